from fastapi import APIRouter, Depends, Query

from app.api.deps import CompanyContext, get_company_context
from app.db.session import get_db
from app.schemas.reservation import (
    ReservationCreate,
    ReservationDetail,
    ReservationListResponse,
    ReservationPassengersUpdate,
    ReservationStatus,
)
from app.services.reservation_service import ReservationService

router = APIRouter(prefix="/reservations", tags=["reservations"])


def get_reservation_service(
    ctx: CompanyContext = Depends(get_company_context),
    db=Depends(get_db),
) -> ReservationService:
    return ReservationService(db, ctx)


@router.post("", response_model=ReservationDetail, status_code=201)
def create_reservation(
    payload: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetail:
    return service.create_reservation(payload)


@router.get("", response_model=ReservationListResponse)
def list_reservations(
    trip_id: int | None = Query(None, ge=1),
    status: ReservationStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationListResponse:
    return service.list_reservations(trip_id, status, limit, offset)


@router.get("/{reservation_id}", response_model=ReservationDetail)
def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetail:
    return service.get_reservation(reservation_id)


@router.post("/{reservation_id}/cancel", response_model=ReservationDetail)
def cancel_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetail:
    return service.cancel_reservation(reservation_id)


@router.put("/{reservation_id}/passengers", response_model=ReservationDetail)
def replace_passengers(
    reservation_id: int,
    payload: ReservationPassengersUpdate,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetail:
    return service.replace_passengers(reservation_id, payload)


@router.post("/{reservation_id}/mark-paid", response_model=ReservationDetail)
def mark_paid(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationDetail:
    return service.mark_paid(reservation_id)


@router.delete("/{reservation_id}", status_code=204)
def delete_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
) -> None:
    service.delete_reservation(reservation_id)
