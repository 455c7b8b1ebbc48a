"""Custom exception hierarchy for riskplan."""

from __future__ import annotations

from typing import Any


class RiskPlanError(Exception):
    """Base exception for all riskplan-specific errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RiskPlanError):
    """Raised when configuration is invalid or missing."""
    pass


class RulesConfigError(ConfigurationError):
    """Raised when a risk rules file cannot be read or is invalid."""
    pass


class ValidationError(RiskPlanError):
    """Base class for validation errors."""
    pass


class PlanValidationError(ValidationError):
    """Raised when a plan state violates a model invariant."""
    pass


class DuplicateIdError(ValidationError):
    """Raised when an id appears twice within the same collection."""
    pass


class DiffConflictError(ValidationError):
    """Raised when a diff both adds/updates and removes the same id."""
    pass


class WorkspaceIntegrityError(ValidationError):
    """Raised when a serialized workspace has dangling or cyclic references."""
    pass


class LockedLayerError(ValidationError):
    """Raised when an edit targets an element on a locked layer."""
    pass


class NotFoundError(RiskPlanError):
    """Base class for failed direct lookups."""
    pass


class PlanNotFoundError(NotFoundError):
    """Raised when a plan id is unknown to the workspace."""
    pass


class CommitNotFoundError(NotFoundError):
    """Raised when a commit id is unknown or belongs to another plan."""
    pass


class ElementNotFoundError(NotFoundError):
    """Raised when an edit references a layer, element or finding that does not exist."""
    pass


class ConflictError(RiskPlanError):
    """Base class for concurrent-edit conflicts."""
    pass


class HeadConflictError(ConflictError):
    """Raised when the expected head commit does not match the actual head."""
    pass


class VersioningError(RiskPlanError):
    """Base class for history traversal errors."""
    pass


class UnsupportedMergeError(VersioningError):
    """Raised when history traversal meets a commit with more than one parent."""
    pass


class StorageError(RiskPlanError):
    """Raised when storage operations fail."""
    pass


class S3Error(StorageError):
    """Raised when S3 operations fail."""
    pass


class PlanImportError(RiskPlanError):
    """Raised when an external drawing cannot be converted to a plan."""
    pass
