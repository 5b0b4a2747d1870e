"""Custom exception classes for the service-charge core.

Every error is scoped to the single operation that raised it. Store errors
carry a ``retryable`` flag so callers can tell transient failures from fatal ones.
"""


class ServiceChargeError(Exception):
    """Base exception for service-charge operations."""

    pass


class ValidationError(ServiceChargeError):
    """Invalid input (non-positive payment, negative rate, unknown enum value)."""

    pass


class DemandNotFoundError(ServiceChargeError):
    """No demand exists with the requested id."""

    def __init__(self, demand_id: int):
        self.demand_id = demand_id
        super().__init__(f"Service charge demand {demand_id} not found")


class UnsupportedPenaltyTypeError(ValidationError):
    """Penalty configuration uses a type other than the flat fee."""

    pass


class InvariantViolationError(ServiceChargeError):
    """A demand mutation would break one of the monetary invariants."""

    def __init__(self, demand_id: int | None, invariant: str):
        self.demand_id = demand_id
        self.invariant = invariant
        super().__init__(f"Demand {demand_id} violates invariant: {invariant}")


class StoreError(ServiceChargeError):
    """Backing-store operation failed (connection, timeout, constraint)."""

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)


class ConcurrentUpdateError(StoreError):
    """Another writer updated the demand between our read and our write."""

    def __init__(self, message: str = "Demand was modified concurrently"):
        super().__init__(message, retryable=True)
