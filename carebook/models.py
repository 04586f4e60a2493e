from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"


class EntryType(str, Enum):
    TOP_UP = "top-up"
    CONSUMPTION = "consumption"
    BOOKING = "booking"
    ADJUSTMENT = "adjustment"


REVENUE_TYPES = (EntryType.CONSUMPTION, EntryType.BOOKING)


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number (or numeric string) to a finite Decimal.

    Integral values are returned without a fractional part so that 100.0
    read back from the store compares and prints like 100.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    if number == number.to_integral_value():
        try:
            return number.quantize(Decimal(1))
        except InvalidOperation as e:
            # more integer digits than the context precision allows
            raise ValueError(f"number out of range: {value!r}") from e
    return number


def to_json_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class Customer(BaseModel):
    id: str
    phone: str
    name: str = ""
    balance: Decimal = Decimal(0)
    points: int = 0
    note: str = ""
    raw_fields: dict = Field(default_factory=dict, exclude=True)

    model_config = ConfigDict(from_attributes=True)


class Booking(BaseModel):
    id: str
    phone: str = ""
    date: str = ""
    time: str = ""
    service_type: str = ""
    attendant: str = ""
    notes: str = ""
    status: BookingStatus = BookingStatus.PENDING
    source: str = ""
    created_at: Optional[datetime] = None
    raw_fields: dict = Field(default_factory=dict, exclude=True)

    model_config = ConfigDict(from_attributes=True)


class LedgerEntry(BaseModel):
    id: str
    phone: str
    entry_type: EntryType
    amount: Decimal
    note: str = ""
    operator: str = ""
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NewLedgerEntry(BaseModel):
    phone: str
    entry_type: EntryType
    amount: Decimal
    note: str = ""
    operator: str = ""


class RegisterCustomerRequest(BaseModel):
    phone: str = Field(..., description="Mobile number, unique per customer")
    name: str
    note: str = ""

    model_config = ConfigDict(json_schema_extra={
        "example": {"phone": "0912345678", "name": "Chen Mei-Ling"}
    })


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    note: Optional[str] = None


class CreateBookingRequest(BaseModel):
    phone: str
    date: str = Field(..., description="Requested date, e.g. 2024-05-01")
    time: str = Field(..., description="Requested time slot, e.g. 14:00")
    service_type: str
    attendant: str = ""
    notes: str = ""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "phone": "0912345678",
            "date": "2024-05-01",
            "time": "14:00",
            "service_type": "Hospital escort",
        }
    })


class BalanceUpdateRequest(BaseModel):
    balance: Decimal
    points: Decimal
    note: Optional[str] = None
    operator: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {"balance": 1500, "points": 20, "note": "Cash top-up at counter"}
    })


class StatusChangeRequest(BaseModel):
    status: BookingStatus


class ReconcileResult(BaseModel):
    customer: Customer
    entries: list[LedgerEntry]
    message: str


class BookingStatusResponse(BaseModel):
    booking_id: str
    status: BookingStatus


class StatusChange(BaseModel):
    booking_id: str
    previous: BookingStatus
    status: BookingStatus


class Stats(BaseModel):
    total_members: int = 0
    total_bookings: int = 0
    pending_bookings: int = 0
    total_revenue: Decimal = Decimal(0)
