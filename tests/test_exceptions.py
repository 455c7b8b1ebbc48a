"""Tests for custom exception hierarchy."""

import pytest

from riskplan.exceptions import (
    CommitNotFoundError,
    ConfigurationError,
    ConflictError,
    DiffConflictError,
    DuplicateIdError,
    ElementNotFoundError,
    HeadConflictError,
    LockedLayerError,
    NotFoundError,
    PlanImportError,
    PlanNotFoundError,
    PlanValidationError,
    RiskPlanError,
    RulesConfigError,
    S3Error,
    StorageError,
    UnsupportedMergeError,
    ValidationError,
    VersioningError,
    WorkspaceIntegrityError,
)


def test_riskplan_error_base():
    """Test base RiskPlanError."""
    error = RiskPlanError("Test error", {"key": "value"})
    assert str(error) == "Test error"
    assert error.message == "Test error"
    assert error.details == {"key": "value"}


def test_details_default_to_empty_dict():
    error = PlanNotFoundError("Plan p1 not found")
    assert error.details == {}


def test_rules_config_error():
    """Test RulesConfigError."""
    error = RulesConfigError("Rules missing", {"path": "rules.yaml"})
    assert isinstance(error, ConfigurationError)
    assert isinstance(error, RiskPlanError)
    assert error.message == "Rules missing"


@pytest.mark.parametrize(
    "exc_type",
    [PlanValidationError, DuplicateIdError, DiffConflictError, WorkspaceIntegrityError, LockedLayerError],
)
def test_validation_errors(exc_type):
    error = exc_type("invalid")
    assert isinstance(error, ValidationError)
    assert isinstance(error, RiskPlanError)


@pytest.mark.parametrize("exc_type", [PlanNotFoundError, CommitNotFoundError, ElementNotFoundError])
def test_not_found_errors(exc_type):
    assert issubclass(exc_type, NotFoundError)


def test_exception_inheritance():
    """Test exception inheritance hierarchy."""
    assert issubclass(HeadConflictError, ConflictError)
    assert issubclass(UnsupportedMergeError, VersioningError)
    assert issubclass(S3Error, StorageError)
    assert issubclass(PlanImportError, RiskPlanError)
    assert not issubclass(StorageError, ValidationError)


def test_catching_base_class():
    with pytest.raises(RiskPlanError):
        raise CommitNotFoundError("Commit c1 not found", {"commit_id": "c1"})
