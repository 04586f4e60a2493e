import logging

from .exceptions import InvalidArgumentError, InvalidTransitionError
from .models import Booking, BookingStatus, StatusChange
from .repositories import BOOKING_FIELDS, BookingRepository, CustomerRepository, read_field

logger = logging.getLogger(__name__)


# Completed is terminal: advancing it again is a no-op, not an error.
NEXT_STATUS = {
    BookingStatus.PENDING: BookingStatus.CONFIRMED,
    BookingStatus.CONFIRMED: BookingStatus.COMPLETED,
    BookingStatus.COMPLETED: BookingStatus.COMPLETED,
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target == current or target == NEXT_STATUS[current]


class BookingService:
    def __init__(self, bookings: BookingRepository, customers: CustomerRepository):
        self.bookings = bookings
        self.customers = customers

    def create_booking(
        self,
        phone: str,
        date: str,
        time: str,
        service_type: str,
        attendant: str = "",
        notes: str = "",
    ) -> Booking:
        missing = [
            name for name, value in
            (("phone", phone), ("date", date), ("time", time), ("service_type", service_type))
            if not (value or "").strip()
        ]
        if missing:
            raise InvalidArgumentError(f"Missing booking fields: {', '.join(missing)}")

        customer = self.customers.get(phone.strip())
        booking = self.bookings.create(
            phone=customer.phone,
            date=date.strip(),
            time=time.strip(),
            service_type=service_type.strip(),
            attendant=(attendant or "").strip(),
            notes=(notes or "").strip(),
        )
        logger.info(f"Booking {booking.id} created for {customer.phone} on {booking.date} {booking.time}")
        return booking

    def list_bookings(self) -> list[Booking]:
        return self.bookings.list_all()

    def list_customer_bookings(self, phone: str) -> list[Booking]:
        customer = self.customers.get((phone or "").strip())
        return self.bookings.list_for_customer(customer.phone)

    def advance_status(self, booking_id: str) -> BookingStatus:
        booking = self.bookings.get(booking_id)
        return self._move(booking, NEXT_STATUS[booking.status]).status

    def transition_status(self, booking_id: str, target: BookingStatus) -> StatusChange:
        booking = self.bookings.get(booking_id)
        if not can_transition(booking.status, target):
            raise InvalidTransitionError(
                f"Booking {booking_id} cannot move from {booking.status.value} to {target.value}"
            )
        return self._move(booking, target)

    def _move(self, booking: Booking, target: BookingStatus) -> StatusChange:
        previous = booking.status
        # a blank stored status reads as Pending but is written out on first move
        if target != previous or not _has_stored_status(booking):
            self.bookings.update_status(booking, target)
            logger.info(f"Booking {booking.id}: {previous.value} -> {target.value}")
        return StatusChange(booking_id=booking.id, previous=previous, status=target)


def _has_stored_status(booking: Booking) -> bool:
    return read_field(booking.raw_fields, BOOKING_FIELDS["status"]) is not None
