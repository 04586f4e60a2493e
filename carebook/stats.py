import logging
from decimal import Decimal

from .models import BookingStatus, REVENUE_TYPES, Stats
from .repositories import BookingRepository, CustomerRepository, LedgerRepository

logger = logging.getLogger(__name__)


class StatsService:
    """Back-office summary, rescanned from the store on every call."""

    def __init__(
        self,
        customers: CustomerRepository,
        bookings: BookingRepository,
        ledger: LedgerRepository,
    ):
        self.customers = customers
        self.bookings = bookings
        self.ledger = ledger

    def compute_stats(self) -> Stats:
        customers = self.customers.list_all()
        bookings = self.bookings.list_all()
        entries = self.ledger.list_all()

        revenue = sum(
            (abs(e.amount) for e in entries if e.entry_type in REVENUE_TYPES),
            Decimal(0),
        )
        stats = Stats(
            total_members=len(customers),
            total_bookings=len(bookings),
            pending_bookings=sum(1 for b in bookings if b.status == BookingStatus.PENDING),
            total_revenue=revenue,
        )
        logger.debug(f"Computed stats: {stats.model_dump()}")
        return stats
