"""
Pydantic schemas for command input validation and query results.
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Any, Dict, Type, TypeVar, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError
from hotelops.models.ontology import BookingStatus, RoomStatus

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_input(schema: Type[SchemaT], data: Union[SchemaT, Dict[str, Any]]) -> SchemaT:
    """
    Validate ``data`` against ``schema``.

    Raises:
        ValidationError: with the pydantic error list in ``context["errors"]``
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        message = "; ".join(
            f"{err['field']}: {err['message']}" if err["field"] else err["message"]
            for err in errors
        )
        raise ValidationError(message or f"Invalid {schema.__name__}", {"errors": errors}) from e


def _require_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


# ============== 房间 Schemas ==============

class GuestAssignment(BaseModel):
    guest_name: str
    checkin_time: Optional[datetime] = None
    checkout_time: Optional[datetime] = None

    @field_validator("guest_name")
    @classmethod
    def validate_guest_name(cls, v: str) -> str:
        return _require_text(v)

    @model_validator(mode="after")
    def validate_times(self) -> "GuestAssignment":
        if self.checkin_time and self.checkout_time and self.checkout_time <= self.checkin_time:
            raise ValueError("checkout_time must be after checkin_time")
        return self


class RoomUpdate(BaseModel):
    """Descriptive fields only; status, guest and block fields have their own commands."""
    number: Optional[str] = Field(None, max_length=10)
    floor: Optional[int] = None
    type: Optional[str] = None
    nightly_rate: Optional[Decimal] = Field(None, ge=0)
    model_config = ConfigDict(extra="forbid")

    @field_validator("number", "type")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return _require_text(v)


class RoomStats(BaseModel):
    total: int
    available: int
    occupied: int
    cleaning: int
    maintenance: int
    out_of_order: int
    occupancy_rate: float


# ============== 预订 Schemas ==============

class BookingBase(BaseModel):
    guest_name: str = Field(..., max_length=100)
    email: str = Field("", max_length=100)
    phone: str = Field("", max_length=30)
    room_number: str = Field(..., max_length=10)
    check_in: date
    check_out: date
    total_amount: Decimal = Field(..., ge=0)
    paid_amount: Decimal = Field(Decimal("0"), ge=0)
    special_requests: str = ""

    @field_validator("guest_name", "room_number")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        return _require_text(v)

    @model_validator(mode="after")
    def validate_ranges(self) -> "BookingBase":
        if self.check_in >= self.check_out:
            raise ValueError("check_in must be before check_out")
        if self.paid_amount > self.total_amount:
            raise ValueError("paid_amount cannot exceed total_amount")
        return self


class BookingCreate(BookingBase):
    model_config = ConfigDict(extra="ignore")


class BookingUpdate(BaseModel):
    guest_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    room_number: Optional[str] = Field(None, max_length=10)
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    total_amount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Optional[Decimal] = Field(None, ge=0)
    special_requests: Optional[str] = None
    model_config = ConfigDict(extra="forbid")

    @field_validator("guest_name", "room_number")
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> Optional[str]:
        return _require_text(v)


class BookingFilter(BaseModel):
    status: Optional[BookingStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    guest_name: Optional[str] = None


# ============== 可用房查询 Schemas ==============

class AvailabilitySearch(BaseModel):
    check_in: date
    check_out: date
    guests: int = Field(1, ge=1)
    room_types: Optional[List[str]] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "AvailabilitySearch":
        if self.check_in >= self.check_out:
            raise ValueError("check_in must be before check_out")
        return self


class PriceQuote(BaseModel):
    nights: int
    subtotal: Decimal
    taxes: Decimal
    total: Decimal


class AvailableRoom(BaseModel):
    """A candidate room annotated with pricing and presentation metadata."""
    id: int
    number: str
    floor: int
    type: str
    nightly_rate: Decimal
    status: RoomStatus
    nights: int
    subtotal: Decimal
    taxes: Decimal
    total: Decimal
    amenities: List[str] = Field(default_factory=list)
    photos: List[str] = Field(default_factory=list)


# ============== 支付 Schemas ==============

class PaymentRequest(BaseModel):
    booking_id: int
    amount: Decimal = Field(..., gt=0)
    method: str = "card"

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        return _require_text(v)


class PaymentResult(BaseModel):
    transaction_id: str
    status: str  # "completed" | "failed"
    booking_id: int
    amount: Decimal
    method: str
    processed_at: datetime

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"
