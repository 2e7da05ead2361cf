"""Error taxonomy for workflow transitions and record lookups."""

from typing import Any, Optional


class StaffTrakError(Exception):
    """Base class for every error raised by the engine."""
    pass


class WorkflowError(StaffTrakError):
    """A requested workflow action was rejected. Nothing was changed."""
    pass


class InvalidTransition(WorkflowError):
    """The record's current status does not allow the requested action."""

    def __init__(
        self,
        record_type: str,
        current_status: Any,
        action: str,
        target_status: Optional[Any] = None,
        reason: Optional[str] = None,
    ):
        self.record_type = record_type
        self.current_status = _status_value(current_status)
        self.action = action
        self.target_status = _status_value(target_status)
        self.reason = reason

        message = f"Cannot {action} {record_type} in status '{self.current_status}'"
        if self.target_status is not None:
            message += f" (attempted '{self.target_status}')"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MissingRequiredField(WorkflowError):
    """An action needs a value that was not supplied or not yet recorded."""

    def __init__(self, record_type: str, field: str, action: str):
        self.record_type = record_type
        self.field = field
        self.action = action
        super().__init__(f"{record_type} {action} requires '{field}'")


class NotAuthorized(WorkflowError):
    """The acting user is not allowed to perform this action on the record."""

    def __init__(self, record_type: str, action: str, actor_id: Any, reason: str):
        self.record_type = record_type
        self.action = action
        self.actor_id = actor_id
        super().__init__(f"User {actor_id} cannot {action} {record_type}: {reason}")


class NotFound(StaffTrakError):
    """A referenced record is absent from the store."""

    def __init__(self, record_type: str, record_id: Any):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"{record_type} {record_id} not found")


def _status_value(status: Any) -> Any:
    return getattr(status, "value", status)
