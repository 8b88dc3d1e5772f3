"""Error kinds raised by the engine.

Services raise these and never HTTP exceptions; the API layer maps
``status_code`` and ``code`` onto the response.
"""

from typing import Any


class EngineError(Exception):
    """Base class for all engine errors."""

    code: str = "engine_error"
    status_code: int = 400

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details or {}


class NotFoundError(EngineError):
    """Raised when an entity id is unknown."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidTransitionError(EngineError):
    """Raised when an action is not permitted from the current status."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, entity_type: str, current: str, action: str, reason: str | None = None) -> None:
        message = f"Cannot {action} {entity_type} in status '{current}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            details={"entity_type": entity_type, "current": current, "action": action},
        )
        self.entity_type = entity_type
        self.current = current
        self.action = action


class ValidationError(EngineError):
    """Raised for malformed input (bad duration, missing field, end before start)."""

    code = "validation_error"
    status_code = 422


class ConflictError(EngineError):
    """Raised when a write lost a race against a concurrent writer."""

    code = "conflict"
    status_code = 409


class SlotNotAvailableError(ConflictError):
    """Raised when a requested time overlaps an existing booking."""

    code = "slot_not_available"
