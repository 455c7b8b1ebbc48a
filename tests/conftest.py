from __future__ import annotations

import pytest
from loguru import logger

from riskplan.model.schema import Layer, PlanState, Point2D, Wall, Zone
from riskplan.model.workspace import WorkspaceState

from factories import square


@pytest.fixture
def base_state() -> PlanState:
    """Two layers, one wall and two zones; zone-b pulls risk from zone-a."""
    return PlanState(
        layers=[
            Layer(id="lyr-arch", name="Walls", type="architectural"),
            Layer(id="lyr-safety", name="Zones", type="safety"),
        ],
        elements=[
            Wall(id="wall-1", layer_id="lyr-arch", start=Point2D(x=0, y=0), end=Point2D(x=8, y=0)),
            Zone(id="zone-a", layer_id="lyr-safety", name="Workshop", polygon=square(0.0), usage="work"),
            Zone(
                id="zone-b",
                layer_id="lyr-safety",
                name="Storage",
                polygon=square(4.0),
                usage="storage",
                related_zone_ids=["zone-a"],
            ),
        ],
        findings=[],
    )


@pytest.fixture
def workspace() -> WorkspaceState:
    return WorkspaceState()


@pytest.fixture
def log_records():
    """Records logged through loguru while the test runs."""
    records: list[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)
