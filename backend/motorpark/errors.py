"""
Typed failures and operation results for the motor park trips core.

Services raise a ``ParkOperationError`` subclass before mutating anything.
Public operations catch it and hand back an ``OperationResult`` so callers
(route handlers, the CLI) map the ``reason`` to a message instead of
handling exceptions.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class ParkOperationError(Exception):
    """Base class for every rejected operation."""

    reason = "operation_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {"reason": self.reason, "message": self.message}


class NotFoundError(ParkOperationError):
    """Referenced trip, booking or parcel does not exist."""
    reason = "not_found"


class ValidationError(ParkOperationError):
    """Input breaks a business rule (seat ceiling, missing recurrence pattern)."""
    reason = "validation_error"


class CapacityError(ParkOperationError):
    """No seat left, or capacity would drop below what is already taken."""
    reason = "capacity_error"


class ImmutableFieldError(ParkOperationError):
    """Field cannot change once bookings are confirmed."""
    reason = "immutable_field"

    def __init__(self, message: str, field_name: str):
        super().__init__(message)
        self.field_name = field_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field_name
        return data


class TripNotBookableError(ParkOperationError):
    """Trip is not published or live."""
    reason = "trip_not_bookable"


class HoldExpiredError(ParkOperationError):
    """Payment arrived after the seat hold lapsed."""
    reason = "hold_expired"


class DriverConflictError(ParkOperationError):
    """Driver already drives another published or live trip that day."""
    reason = "driver_conflict"

    def __init__(self, message: str, conflict_trip_id: str):
        super().__init__(message)
        self.conflict_trip_id = conflict_trip_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["conflict_trip_id"] = self.conflict_trip_id
        return data


class InvalidStateError(ParkOperationError):
    """Entity is in a state that does not allow the operation."""
    reason = "invalid_state"


class LockTimeoutError(ParkOperationError):
    """Per-trip lock could not be acquired in time."""
    reason = "lock_timeout"


@dataclass
class OperationResult(Generic[T]):
    """Success or failure of a public operation."""
    success: bool
    data: Optional[T] = None
    error: Optional[ParkOperationError] = None

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ParkOperationError) -> "OperationResult[T]":
        return cls(success=False, error=error)

    @property
    def reason(self) -> Optional[str]:
        """Error reason code, None on success."""
        return self.error.reason if self.error else None

    def unwrap(self) -> T:
        """Return the data or raise the carried error."""
        if not self.success:
            raise self.error
        return self.data

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        if not self.success:
            return {"success": False, "error": self.error.to_dict()}
        data = self.data
        if isinstance(data, list):
            data = [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data]
        elif hasattr(data, "model_dump"):
            data = data.model_dump(mode="json")
        return {"success": True, "data": data}


def parse_input(model_cls: Type[M], data: Union[M, Dict[str, Any]]) -> M:
    """
    Validate caller input into ``model_cls``.

    Pydantic validation failures surface as ``ValidationError`` so callers
    only ever see the park error taxonomy.
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid {model_cls.__name__}: {problems}")
