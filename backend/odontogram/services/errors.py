from __future__ import annotations


class ChartValidationError(ValueError):
    """Rejected chart mutation or billing input; the target is left unchanged."""

    def __init__(self, message: str, *, field: str | None = None, tooth: str | None = None):
        super().__init__(message)
        self.field = field
        self.tooth = tooth


class ChartStoreError(RuntimeError):
    """A `ChartStore` backend could not complete a read or write."""
