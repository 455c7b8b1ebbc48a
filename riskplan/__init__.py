"""Floor-plan safety risk scoring with commit/diff versioned plan editing."""

__version__ = "0.1.0"
