"""Domain layer.

Value objects, the regeneration state machine and domain exceptions.
"""

from itemgen.domain.exceptions import (
    BatchOperationError,
    DomainError,
    InvalidStateTransitionError,
    PartialProvisioningError,
    RegenerationError,
    RegenerationPendingError,
    ValidationError,
)
from itemgen.domain.state_machines import (
    RegenerationPhase,
    validate_regeneration_transition,
)
from itemgen.domain.value_objects import (
    DEFAULT_GROUP,
    ItemRecord,
    ItemSpec,
    Location,
    OptionSet,
    OptionValue,
    ProductSnapshot,
    RegenerateItemsCommand,
    StockRow,
    calculate_available,
)

__all__ = [
    # Exceptions
    "BatchOperationError",
    "DomainError",
    "InvalidStateTransitionError",
    "PartialProvisioningError",
    "RegenerationError",
    "RegenerationPendingError",
    "ValidationError",
    # State machines
    "RegenerationPhase",
    "validate_regeneration_transition",
    # Value objects
    "DEFAULT_GROUP",
    "ItemRecord",
    "ItemSpec",
    "Location",
    "OptionSet",
    "OptionValue",
    "ProductSnapshot",
    "RegenerateItemsCommand",
    "StockRow",
    "calculate_available",
]
