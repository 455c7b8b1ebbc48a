import json

from loguru import logger

from riskplan.logging_config import JSONFormatter, get_logger, setup_logging
from riskplan.versioning import create_plan


def test_json_formatter_escapes_braces():
    records: list[str] = []
    handler_id = logger.add(lambda message: records.append(str(message)), format=JSONFormatter())
    try:
        logger.bind(plan_id="plan-1").info("Committed {}", "c1")
    finally:
        logger.remove(handler_id)

    payload = json.loads(records[0])
    assert payload["message"] == "Committed c1"
    assert payload["level"] == "INFO"
    assert payload["plan_id"] == "plan-1"


def test_setup_logging_with_file(tmp_path):
    log_file = tmp_path / "logs" / "riskplan.log"
    setup_logging(level="DEBUG", json_format=True, log_file=log_file)
    get_logger("tests").debug("hello")
    logger.complete()
    assert log_file.exists()
    setup_logging(level="INFO")


def test_get_logger_binds_plan_context(log_records):
    get_logger("riskplan.tests", plan_id="plan-1", commit_id="c1").info("bound")
    get_logger().info("plain")

    bound, plain = log_records[-2:]
    assert bound["extra"] == {"name": "riskplan.tests", "plan_id": "plan-1", "commit_id": "c1"}
    assert plain["extra"] == {}


def test_commits_log_their_plan_and_commit(workspace, base_state, log_records):
    create_plan(workspace, "Plan", plan_id="plan-1", layers=base_state.layers,
                elements=base_state.elements, commit_id="c0")
    committed = [r for r in log_records if r["message"].startswith("Committed c0")]
    assert committed[0]["extra"]["plan_id"] == "plan-1"
    assert committed[0]["extra"]["commit_id"] == "c0"
