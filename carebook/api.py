import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .bookings import BookingService
from .config import Settings, get_settings
from .exceptions import (
    DuplicateCustomerError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
)
from .logging_config import setup_logging
from .models import (
    BalanceUpdateRequest,
    Booking,
    BookingStatusResponse,
    CreateBookingRequest,
    Customer,
    LedgerEntry,
    ReconcileResult,
    RegisterCustomerRequest,
    Stats,
    StatusChange,
    StatusChangeRequest,
    UpdateProfileRequest,
)
from .repositories import BookingRepository, CustomerRepository, LedgerRepository
from .service import AccountService
from .stats import StatsService
from .store import RecordStore, build_store

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)
    store = store or build_store(settings)

    customers = CustomerRepository(store, settings.MEMBERS_TABLE_ID, settings.LEGACY_LABELS)
    bookings = BookingRepository(store, settings.BOOKINGS_TABLE_ID, settings.LEGACY_LABELS)
    ledger = LedgerRepository(store, settings.TRANSACTIONS_TABLE_ID, settings.LEGACY_LABELS)

    account_service = AccountService(customers, ledger, settings.DEFAULT_OPERATOR)
    booking_service = BookingService(bookings, customers)
    stats_service = StatsService(customers, bookings, ledger)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Elder-care bookings, member balances and the transaction ledger",
        version="1.0.0",
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(f"[StorageError] {request.method} {request.url} -> 502: {exc}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Record store unavailable, please try again later"},
        )

    @app.exception_handler(InvalidArgumentError)
    async def handle_invalid_argument(request: Request, exc: InvalidArgumentError):
        logger.warning(f"[InvalidArgumentError] {request.method} {request.url} -> 400: {exc}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "carebook", "store": store.name}

    @app.post("/members", response_model=Customer, status_code=status.HTTP_201_CREATED, tags=["Members"])
    def register_member(request: RegisterCustomerRequest) -> Customer:
        try:
            return account_service.register_customer(request.phone, request.name, request.note)
        except DuplicateCustomerError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except InvalidArgumentError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.get("/members/{phone}", response_model=Customer, tags=["Members"])
    def get_member(phone: str) -> Customer:
        try:
            return account_service.get_customer(phone)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Customer {phone} not found")

    @app.patch("/members/{phone}", response_model=Customer, tags=["Members"])
    def update_member(phone: str, request: UpdateProfileRequest) -> Customer:
        try:
            return account_service.update_profile(phone, request.name, request.note)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Customer {phone} not found")

    @app.get("/members/{phone}/bookings", response_model=list[Booking], tags=["Members"])
    def get_member_bookings(phone: str) -> list[Booking]:
        try:
            return booking_service.list_customer_bookings(phone)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Customer {phone} not found")

    @app.get("/members/{phone}/transactions", response_model=list[LedgerEntry], tags=["Members"])
    def get_member_transactions(phone: str) -> list[LedgerEntry]:
        try:
            return account_service.list_customer_ledger(phone)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Customer {phone} not found")

    @app.post("/bookings", response_model=Booking, status_code=status.HTTP_201_CREATED, tags=["Bookings"])
    def create_booking(request: CreateBookingRequest) -> Booking:
        try:
            return booking_service.create_booking(
                phone=request.phone,
                date=request.date,
                time=request.time,
                service_type=request.service_type,
                attendant=request.attendant,
                notes=request.notes,
            )
        except NotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except InvalidArgumentError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.get("/admin/members", response_model=list[Customer], tags=["Admin"])
    def list_members() -> list[Customer]:
        return account_service.list_customers()

    @app.get("/admin/bookings", response_model=list[Booking], tags=["Admin"])
    def list_bookings() -> list[Booking]:
        return booking_service.list_bookings()

    @app.get("/admin/transactions", response_model=list[LedgerEntry], tags=["Admin"])
    def list_transactions() -> list[LedgerEntry]:
        return account_service.list_ledger()

    @app.get("/admin/stats", response_model=Stats, tags=["Admin"])
    def get_stats() -> Stats:
        return stats_service.compute_stats()

    @app.post("/admin/members/{phone}/balance", response_model=ReconcileResult, tags=["Admin"])
    def update_balance(phone: str, request: BalanceUpdateRequest) -> ReconcileResult:
        try:
            return account_service.reconcile_customer_update(
                phone,
                request.balance,
                request.points,
                note=request.note,
                operator=request.operator,
            )
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Customer {phone} not found")
        except InvalidArgumentError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.post("/admin/bookings/{booking_id}/advance", response_model=BookingStatusResponse, tags=["Admin"])
    def advance_booking(booking_id: str) -> BookingStatusResponse:
        try:
            new_status = booking_service.advance_status(booking_id)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Booking {booking_id} not found")
        return BookingStatusResponse(booking_id=booking_id, status=new_status)

    @app.post("/admin/bookings/{booking_id}/status", response_model=StatusChange, tags=["Admin"])
    def change_booking_status(booking_id: str, request: StatusChangeRequest) -> StatusChange:
        try:
            return booking_service.transition_status(booking_id, request.status)
        except NotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Booking {booking_id} not found")
        except InvalidTransitionError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
