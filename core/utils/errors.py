"""Custom exceptions for core logic."""

from __future__ import annotations


class StorageError(Exception):
    """Raised when the backing JSON store cannot be read."""


class StoreNotFoundError(LookupError):
    """Raised when a store id is not present in the directory."""

    def __init__(self, store_id: str) -> None:
        super().__init__(f"Store not found: {store_id}")
        self.store_id = store_id


class PlanNotFoundError(LookupError):
    """Raised when a plan id is not present for the requested month."""

    def __init__(self, plan_id: str, *, month: str) -> None:
        super().__init__(f"Plan not found: {plan_id} ({month})")
        self.plan_id = plan_id
        self.month = month


class BulkImportError(ValueError):
    """Raised when pasted store rows cannot be imported."""

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message)
        self.reason = reason
