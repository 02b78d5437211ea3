"""State machines for domain workflows.

Deterministic state machine for the item regeneration workflow. The
orchestrator advances through these phases and records the final one
on its result.
"""

from enum import Enum

from itemgen.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Regeneration State Machine
# ============================================================================


class RegenerationPhase(str, Enum):
    """Item regeneration phases.

    State diagram:
        IDLE
          │ start
          ▼
        VALIDATING ──────────────────────────────────► FAILED
          │           │ fallback (no items yet)          ▲
          │ replace   │                                  │
          ▼           │                                  │
        DELETING ─────┼─────────────────────────────────►┤
          │           │                                  │
          │ create    │                                  │
          ▼           ▼                                  │
        CREATING ───────────────────────────────────────►┤
          │           │ fallback sku updated in place    │
          │ provision ▼                                  │
          ▼          DONE                                │
        PROVISIONING ───────────────────────────────────►┘
          │
          │ finish
          ▼
        DONE
    """

    IDLE = "idle"
    VALIDATING = "validating"
    DELETING = "deleting"
    CREATING = "creating"
    PROVISIONING = "provisioning"
    DONE = "done"
    FAILED = "failed"

    def can_transition_to(self, target: "RegenerationPhase") -> bool:
        """Check if transition to target phase is valid.

        Args:
            target: Target phase to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _REGENERATION_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["RegenerationPhase"]:
        """Get list of valid target phases.

        Returns:
            List of phases that can be transitioned to, in declaration order.
        """
        allowed = _REGENERATION_TRANSITIONS.get(self, set())
        return [phase for phase in RegenerationPhase if phase in allowed]

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) phase.

        Returns:
            True if no further transitions are possible.
        """
        return len(_REGENERATION_TRANSITIONS.get(self, set())) == 0

    def is_writing(self) -> bool:
        """Check if the workflow mutates storage in this phase.

        Returns:
            True for the deleting, creating and provisioning phases.
        """
        return self in {
            RegenerationPhase.DELETING,
            RegenerationPhase.CREATING,
            RegenerationPhase.PROVISIONING,
        }


# Regeneration transitions (defined outside enum to avoid Enum restrictions)
_REGENERATION_TRANSITIONS: dict[RegenerationPhase, set[RegenerationPhase]] = {
    RegenerationPhase.IDLE: {RegenerationPhase.VALIDATING},
    RegenerationPhase.VALIDATING: {
        RegenerationPhase.DELETING,
        RegenerationPhase.CREATING,
        RegenerationPhase.FAILED,
    },
    RegenerationPhase.DELETING: {RegenerationPhase.CREATING, RegenerationPhase.FAILED},
    RegenerationPhase.CREATING: {
        RegenerationPhase.PROVISIONING,
        RegenerationPhase.DONE,
        RegenerationPhase.FAILED,
    },
    RegenerationPhase.PROVISIONING: {RegenerationPhase.DONE, RegenerationPhase.FAILED},
    RegenerationPhase.DONE: set(),  # Terminal state
    RegenerationPhase.FAILED: set(),  # Terminal state
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_regeneration_transition(
    product_id: str,
    current_phase: RegenerationPhase,
    target_phase: RegenerationPhase,
) -> None:
    """Validate and raise if a regeneration phase transition is invalid.

    Args:
        product_id: Product identifier for error message.
        current_phase: Current phase.
        target_phase: Target phase.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_phase.can_transition_to(target_phase):
        raise InvalidStateTransitionError(
            entity_type="Regeneration",
            entity_id=product_id,
            current_state=current_phase.value,
            target_state=target_phase.value,
            allowed_transitions=[p.value for p in current_phase.allowed_transitions()],
        )
