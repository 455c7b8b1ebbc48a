from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from riskplan.exceptions import StorageError, WorkspaceIntegrityError
from riskplan.model.schema import SerializedWorkspace

DEFAULT_FILENAME = "workspace.json"


class LocalWorkspaceStore:
    def __init__(self, root: Path, filename: str = DEFAULT_FILENAME) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.path = self.root / filename

    def save(self, serialized: SerializedWorkspace) -> str:
        data = serialized.model_dump_json(by_alias=True, exclude_none=True, indent=2)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(data, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write workspace to {self.path}: {exc}", {"path": str(self.path)}) from exc
        return str(self.path)

    def load(self) -> Optional[SerializedWorkspace]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StorageError(f"Cannot read workspace from {self.path}: {exc}", {"path": str(self.path)}) from exc
        except json.JSONDecodeError as exc:
            raise WorkspaceIntegrityError(f"Workspace file {self.path} is not valid JSON: {exc}", {"path": str(self.path)}) from exc
        try:
            return SerializedWorkspace.model_validate(payload)
        except PydanticValidationError as exc:
            raise WorkspaceIntegrityError(
                f"Malformed workspace file {self.path}: {exc.error_count()} validation error(s)",
                {"path": str(self.path), "errors": exc.errors(include_url=False)},
            ) from exc


__all__ = ["LocalWorkspaceStore"]
