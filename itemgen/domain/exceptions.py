"""Domain exceptions.

All domain-level errors that represent business rule violations or
failed item regeneration steps. Services raise these; the API layer
maps them to error responses.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Regeneration").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Regeneration Errors
# ============================================================================


class RegenerationError(DomainError):
    """Base class for item regeneration errors."""

    pass


class ValidationError(RegenerationError):
    """Raised before any write when a regeneration request is unusable.

    Covers an empty selection, a product that has not been persisted yet,
    and option values that do not belong to the store.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable error message.
            details: Optional error context.
        """
        super().__init__(message, details)


class BatchOperationError(RegenerationError):
    """Raised when a fan-out phase (delete or create) fails.

    Fatal: the remaining workflow is aborted and the caller should
    offer a retry.
    """

    def __init__(
        self,
        product_id: str,
        phase: str,
        failures: list[str] | None = None,
        reason: str | None = None,
    ) -> None:
        """Initialize batch operation error.

        Args:
            product_id: Product being regenerated.
            phase: Phase that failed ("deleting", "creating", ...).
            failures: Error messages from the failed operations.
            reason: Short reason code, e.g. "timeout".
        """
        failures = failures or []
        message = f"Item {phase} failed for product {product_id}"
        if reason:
            message = f"{message}: {reason}"
        elif failures:
            message = f"{message}: {failures[0]}"
        super().__init__(
            message,
            details={
                "product_id": product_id,
                "phase": phase,
                "failures": failures,
                "reason": reason,
            },
        )
        self.product_id = product_id
        self.phase = phase
        self.failures = failures
        self.reason = reason


class PartialProvisioningError(RegenerationError):
    """A stock row could not be created for one item.

    Never raised out of a regeneration; collected into the result so the
    item can be reconciled later.
    """

    def __init__(self, item_id: str, sku: str, reason: str) -> None:
        """Initialize partial provisioning error.

        Args:
            item_id: Item left without a stock row.
            sku: SKU of that item.
            reason: Error message from the failed provisioning call.
        """
        super().__init__(
            f"Stock row not provisioned for item {sku} ({item_id}): {reason}",
            details={"item_id": item_id, "sku": sku, "reason": reason},
        )
        self.item_id = item_id
        self.sku = sku
        self.reason = reason


class RegenerationPendingError(RegenerationError):
    """Raised when a regeneration for the same product is already running."""

    def __init__(self, product_id: str) -> None:
        """Initialize regeneration pending error.

        Args:
            product_id: Product with a regeneration in flight.
        """
        super().__init__(
            f"Item regeneration already in progress for product {product_id}",
            details={"product_id": product_id},
        )
        self.product_id = product_id
