"""
Unit Tests for the record repositories

Tests cover:
1. Module import and evaluable annotations on every supported interpreter
2. Listing all records and the records of one customer
"""

import importlib
import typing
from decimal import Decimal

import pytest

from carebook.models import Booking, Customer, LedgerEntry, NewLedgerEntry, EntryType
from carebook.repositories import BookingRepository, CustomerRepository, LedgerRepository
from carebook.store import InMemoryRecordStore


PHONE = "0912345678"


class TestAnnotations:
    """Return annotations must not resolve to the repositories' own methods."""

    def test_module_imports(self):
        module = importlib.import_module("carebook.repositories")

        assert module.BookingRepository is BookingRepository

    @pytest.mark.parametrize("method, item", [
        (CustomerRepository.list_all, Customer),
        (BookingRepository.list_all, Booking),
        (BookingRepository.list_for_customer, Booking),
        (LedgerRepository.list_all, LedgerEntry),
        (LedgerRepository.list_for_customer, LedgerEntry),
    ])
    def test_list_annotations_resolve(self, method, item):
        hints = typing.get_type_hints(method)

        assert hints["return"] == list[item]


class TestListing:
    def test_list_for_customer_filters_by_phone(self):
        store = InMemoryRecordStore()
        bookings = BookingRepository(store, "bookings")
        bookings.create(phone=PHONE, date="2024-05-01", time="09:00", service_type="Day care")
        bookings.create(phone="0911000001", date="2024-05-02", time="10:00", service_type="Day care")

        assert len(bookings.list_all()) == 2
        assert [b.phone for b in bookings.list_for_customer(PHONE)] == [PHONE]

    def test_ledger_list_for_customer(self):
        store = InMemoryRecordStore()
        ledger = LedgerRepository(store, "transactions")
        ledger.append(NewLedgerEntry(
            phone=PHONE, entry_type=EntryType.TOP_UP, amount=Decimal("50"), note="Cash", operator="admin",
        ))

        entries = ledger.list_for_customer(PHONE)

        assert len(entries) == 1
        assert entries[0].amount == Decimal("50")
        assert ledger.list_for_customer("0911000001") == []
