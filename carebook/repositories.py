"""
Repositories translating between store records and domain models.

Column names vary between deployments of the member and booking tables
(the website wrote Chinese headers, older imports used English ones), so each
logical field lists the names it may be stored under. The first name is used
when a record does not already carry one of them.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from .exceptions import InvalidArgumentError, NotFoundError
from .models import (
    Booking,
    BookingStatus,
    Customer,
    EntryType,
    LedgerEntry,
    NewLedgerEntry,
    to_decimal,
    to_json_number,
)
from .store import RecordStore

logger = logging.getLogger(__name__)


MEMBER_FIELDS = {
    "phone": ("電話", "Phone", "手機"),
    "name": ("姓名", "Name", "會員姓名"),
    "balance": ("儲值金", "Balance"),
    "points": ("點數", "Points"),
    "note": ("備註", "Note"),
}

BOOKING_FIELDS = {
    "phone": ("手機", "Phone"),
    "date": ("預約日期", "Date"),
    "time": ("預約時間", "Time"),
    "service_type": ("服務類型", "ServiceType"),
    "attendant": ("指定陪伴員", "Attendant"),
    "notes": ("備註", "Notes"),
    "status": ("狀態", "Status"),
    "source": ("建立來源", "Source"),
}

LEDGER_FIELDS = {
    "phone": ("Phone", "手機", "電話"),
    "type": ("Type", "類型"),
    "amount": ("Amount", "金額"),
    "note": ("Note", "備註"),
    "operator": ("Operator", "操作者"),
    "created_at": ("CreatedAt",),
}

STATUS_LABELS = {
    BookingStatus.PENDING: "待確認",
    BookingStatus.CONFIRMED: "已確認",
    BookingStatus.COMPLETED: "已完成",
}

ENTRY_TYPE_LABELS = {
    EntryType.TOP_UP: "儲值",
    EntryType.CONSUMPTION: "消費",
    EntryType.BOOKING: "預約",
    EntryType.ADJUSTMENT: "調整",
}

BOOKING_SOURCE_WEBSITE = "官網預約"


def parse_status(value: Any) -> BookingStatus:
    """Map a stored status to the closed enum; blank means Pending."""
    if value is None or str(value).strip() == "":
        return BookingStatus.PENDING
    text = str(value).strip()
    for status, label in STATUS_LABELS.items():
        if text == label or text.lower() == status.value.lower():
            return status
    raise InvalidArgumentError(f"Unknown booking status: {value!r}")


def parse_entry_type(value: Any) -> EntryType:
    text = str(value or "").strip()
    for entry_type, label in ENTRY_TYPE_LABELS.items():
        if text == label or text.lower() == entry_type.value:
            return entry_type
    raise InvalidArgumentError(f"Unknown transaction type: {value!r}")


def read_field(fields: dict, aliases: tuple, default: Any = None) -> Any:
    for name in aliases:
        value = fields.get(name)
        if value is not None and value != "":
            return value
    return default


def write_name(fields: dict, aliases: tuple) -> str:
    for name in aliases:
        if name in fields:
            return name
    return aliases[0]


def _stored_decimal(value: Any, field: str) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    try:
        return to_decimal(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Stored {field} is not numeric: {value!r}") from e


def _stored_points(value: Any) -> int:
    points = _stored_decimal(value, "points")
    if points != points.to_integral_value():
        raise InvalidArgumentError(f"Stored points are not a whole number: {value!r}")
    return int(points)


def _stored_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class Repository:
    fields_map: dict = {}

    def __init__(self, store: RecordStore, table: str, legacy_labels: bool = True):
        self.store = store
        self.table = table
        self.legacy_labels = legacy_labels

    def _encode(self, values: dict, existing: Optional[dict] = None) -> dict:
        existing = existing or {}
        return {write_name(existing, self.fields_map[key]): value for key, value in values.items()}


class CustomerRepository(Repository):
    fields_map = MEMBER_FIELDS

    def list_all(self) -> list[Customer]:
        return [self._to_model(r) for r in self.store.list_records(self.table)]

    def find(self, phone: str) -> Optional[Customer]:
        phone = phone.strip()
        for record in self.store.list_records(self.table):
            if _stored_text(read_field(record.get("fields") or {}, MEMBER_FIELDS["phone"])) == phone:
                return self._to_model(record)
        return None

    def get(self, phone: str) -> Customer:
        customer = self.find(phone)
        if customer is None:
            raise NotFoundError(f"Customer {phone} not found")
        return customer

    def create(self, phone: str, name: str, note: str = "") -> Customer:
        values = {"phone": phone, "name": name, "balance": 0, "points": 0}
        if note:
            values["note"] = note
        return self._to_model(self.store.create_record(self.table, self._encode(values)))

    def update(self, customer: Customer, values: dict) -> Customer:
        payload = {}
        for key, value in values.items():
            if key == "balance":
                value = to_json_number(value)
            payload[key] = value
        record = self.store.update_record(self.table, customer.id, self._encode(payload, customer.raw_fields))
        return self._to_model(record)

    def _to_model(self, record: dict) -> Customer:
        fields = record.get("fields") or {}
        return Customer(
            id=record["id"],
            phone=_stored_text(read_field(fields, MEMBER_FIELDS["phone"])),
            name=_stored_text(read_field(fields, MEMBER_FIELDS["name"])),
            balance=_stored_decimal(read_field(fields, MEMBER_FIELDS["balance"]), "balance"),
            points=_stored_points(read_field(fields, MEMBER_FIELDS["points"])),
            note=_stored_text(read_field(fields, MEMBER_FIELDS["note"])),
            raw_fields=fields,
        )


class BookingRepository(Repository):
    fields_map = BOOKING_FIELDS

    def list_all(self) -> list[Booking]:
        bookings = [self._to_model(r) for r in self.store.list_records(self.table)]
        bookings.sort(key=lambda b: (b.date, b.time), reverse=True)
        return bookings

    def list_for_customer(self, phone: str) -> list[Booking]:
        phone = phone.strip()
        return [b for b in self.list_all() if b.phone == phone]

    def get(self, booking_id: str) -> Booking:
        return self._to_model(self.store.get_record(self.table, booking_id))

    def create(
        self,
        phone: str,
        date: str,
        time: str,
        service_type: str,
        attendant: str = "",
        notes: str = "",
    ) -> Booking:
        values = {
            "phone": phone,
            "date": date,
            "time": time,
            "service_type": service_type,
            "attendant": attendant,
            "notes": notes,
            "status": self._status_label(BookingStatus.PENDING),
            "source": BOOKING_SOURCE_WEBSITE if self.legacy_labels else "website",
        }
        return self._to_model(self.store.create_record(self.table, self._encode(values)))

    def update_status(self, booking: Booking, status: BookingStatus) -> Booking:
        if not isinstance(status, BookingStatus):
            status = parse_status(status)
        payload = self._encode({"status": self._status_label(status)}, booking.raw_fields)
        return self._to_model(self.store.update_record(self.table, booking.id, payload))

    def _status_label(self, status: BookingStatus) -> str:
        return STATUS_LABELS[status] if self.legacy_labels else status.value

    def _to_model(self, record: dict) -> Booking:
        fields = record.get("fields") or {}
        return Booking(
            id=record["id"],
            phone=_stored_text(read_field(fields, BOOKING_FIELDS["phone"])),
            date=_stored_text(read_field(fields, BOOKING_FIELDS["date"])),
            time=_stored_text(read_field(fields, BOOKING_FIELDS["time"])),
            service_type=_stored_text(read_field(fields, BOOKING_FIELDS["service_type"])),
            attendant=_stored_text(read_field(fields, BOOKING_FIELDS["attendant"])),
            notes=_stored_text(read_field(fields, BOOKING_FIELDS["notes"])),
            status=parse_status(read_field(fields, BOOKING_FIELDS["status"])),
            source=_stored_text(read_field(fields, BOOKING_FIELDS["source"])),
            created_at=record.get("createdTime"),
            raw_fields=fields,
        )


class LedgerRepository(Repository):
    """Append-only access to the transaction table."""

    fields_map = LEDGER_FIELDS

    def append(self, entry: NewLedgerEntry) -> LedgerEntry:
        values = {
            "phone": entry.phone,
            "type": self._type_label(entry.entry_type),
            "amount": to_json_number(entry.amount),
            "note": entry.note,
            "operator": entry.operator,
        }
        return self._to_model(self.store.create_record(self.table, self._encode(values)))

    def list_all(self) -> list[LedgerEntry]:
        entries = [self._to_model(r) for r in self.store.list_records(self.table)]
        entries.sort(key=lambda e: e.created_at.timestamp() if e.created_at else 0, reverse=True)
        return entries

    def list_for_customer(self, phone: str) -> list[LedgerEntry]:
        phone = phone.strip()
        return [e for e in self.list_all() if e.phone == phone]

    def _type_label(self, entry_type: EntryType) -> str:
        return ENTRY_TYPE_LABELS[entry_type] if self.legacy_labels else entry_type.value

    def _to_model(self, record: dict) -> LedgerEntry:
        fields = record.get("fields") or {}
        return LedgerEntry(
            id=record["id"],
            phone=_stored_text(read_field(fields, LEDGER_FIELDS["phone"])),
            entry_type=parse_entry_type(read_field(fields, LEDGER_FIELDS["type"])),
            amount=_stored_decimal(read_field(fields, LEDGER_FIELDS["amount"]), "amount"),
            note=_stored_text(read_field(fields, LEDGER_FIELDS["note"])),
            operator=_stored_text(read_field(fields, LEDGER_FIELDS["operator"])),
            created_at=read_field(fields, LEDGER_FIELDS["created_at"], record.get("createdTime")),
        )
