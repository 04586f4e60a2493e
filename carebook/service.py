import logging
from decimal import Decimal
from typing import Any, Optional

from .exceptions import (
    DuplicateCustomerError,
    InvalidArgumentError,
    StorageError,
)
from .models import (
    Customer,
    EntryType,
    LedgerEntry,
    NewLedgerEntry,
    ReconcileResult,
    to_decimal,
)
from .repositories import CustomerRepository, LedgerRepository

logger = logging.getLogger(__name__)


def coerce_balance(value: Any) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Balance must be a finite number, got {value!r}") from e


def coerce_points(value: Any) -> int:
    try:
        points = to_decimal(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Points must be a finite number, got {value!r}") from e
    if points != points.to_integral_value():
        raise InvalidArgumentError(f"Points must be a whole number, got {value!r}")
    return int(points)


def _required(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgumentError(f"{field} is required")
    return text


class AccountService:
    """Customer accounts and the balance/points ledger.

    The stored balance and points on a customer are a cached projection of the
    transaction ledger. Every admin edit writes the new values first and then
    appends one ledger entry per changed dimension, so the entries created for
    an edit always sum to the delta of that dimension.
    """

    def __init__(
        self,
        customers: CustomerRepository,
        ledger: LedgerRepository,
        default_operator: str = "admin",
    ):
        self.customers = customers
        self.ledger = ledger
        self.default_operator = default_operator

    def reconcile_customer_update(
        self,
        phone: str,
        new_balance: Any,
        new_points: Any,
        note: Optional[str] = None,
        operator: Optional[str] = None,
    ) -> ReconcileResult:
        balance = coerce_balance(new_balance)
        points = coerce_points(new_points)
        operator = (operator or "").strip() or self.default_operator
        note = (note or "").strip()

        customer = self.customers.get(_required(phone, "phone"))
        balance_delta = balance - customer.balance
        points_delta = points - customer.points

        updated = self.customers.update(customer, {"balance": balance, "points": points})
        logger.info(
            f"Customer {updated.phone} updated by {operator}: "
            f"balance {customer.balance} -> {balance}, points {customer.points} -> {points}"
        )

        entries: list[LedgerEntry] = []
        if balance_delta != 0:
            entries.append(self._append(
                updated,
                EntryType.TOP_UP if balance_delta > 0 else EntryType.ADJUSTMENT,
                balance_delta,
                note or f"Admin balance adjustment: {balance_delta:+}",
                operator,
            ))
        if points_delta != 0:
            entries.append(self._append(
                updated,
                EntryType.ADJUSTMENT,
                Decimal(points_delta),
                note or f"Admin points adjustment: {points_delta:+}",
                operator,
            ))

        return ReconcileResult(
            customer=updated,
            entries=entries,
            message="No balance or points change" if not entries else "Update recorded",
        )

    def register_customer(self, phone: str, name: str, note: str = "") -> Customer:
        phone = _required(phone, "phone")
        name = _required(name, "name")
        if self.customers.find(phone) is not None:
            raise DuplicateCustomerError(f"Phone {phone} is already registered")
        customer = self.customers.create(phone, name, (note or "").strip())
        logger.info(f"Registered customer {customer.phone} ({customer.id})")
        return customer

    def update_profile(
        self, phone: str, name: Optional[str] = None, note: Optional[str] = None
    ) -> Customer:
        customer = self.customers.get(_required(phone, "phone"))
        values = {}
        if name is not None and name.strip() and name.strip() != customer.name:
            values["name"] = name.strip()
        if note is not None and note.strip() != customer.note:
            values["note"] = note.strip()
        if not values:
            return customer
        return self.customers.update(customer, values)

    def get_customer(self, phone: str) -> Customer:
        return self.customers.get(_required(phone, "phone"))

    def list_customers(self) -> list[Customer]:
        return self.customers.list_all()

    def list_ledger(self) -> list[LedgerEntry]:
        return self.ledger.list_all()

    def list_customer_ledger(self, phone: str) -> list[LedgerEntry]:
        customer = self.customers.get(_required(phone, "phone"))
        return self.ledger.list_for_customer(customer.phone)

    def _append(
        self,
        customer: Customer,
        entry_type: EntryType,
        amount: Decimal,
        note: str,
        operator: str,
    ) -> LedgerEntry:
        try:
            entry = self.ledger.append(NewLedgerEntry(
                phone=customer.phone,
                entry_type=entry_type,
                amount=amount,
                note=note,
                operator=operator,
            ))
        except StorageError:
            logger.error(
                f"Customer {customer.phone} was updated but the {entry_type.value} "
                f"ledger entry for {amount:+} was not written"
            )
            raise
        logger.info(f"Ledger {entry.id}: {entry.entry_type.value} {entry.amount:+} for {entry.phone}")
        return entry
