"""
Elder-care booking and member account service

This package provides:
- Customer accounts with a stored balance and points
- An append-only transaction ledger, reconciled on every admin balance edit
- Booking requests with a forward-only status workflow: Pending → Confirmed → Completed
- Back-office statistics over members, bookings and revenue
- Record store clients for Airtable and an in-memory development store
"""

from .models import (
    BookingStatus,
    EntryType,
    Customer,
    Booking,
    LedgerEntry,
    Stats,
)
from .service import AccountService
from .bookings import BookingService
from .stats import StatsService

__all__ = [
    "BookingStatus",
    "EntryType",
    "Customer",
    "Booking",
    "LedgerEntry",
    "Stats",
    "AccountService",
    "BookingService",
    "StatsService",
]
