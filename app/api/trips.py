from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import CompanyContext, get_company_context
from app.db.session import get_db
from app.schemas.segment import CityPairPriceRequest, CityPairPriceResponse
from app.schemas.trip import (
    TripDetail,
    TripListResponse,
    TripPublishRequest,
    TripPublishResponse,
    TripUpdate,
    TripVisibility,
)
from app.services.trip_service import TripFilters, TripService

router = APIRouter(prefix="/trips", tags=["trips"])


def get_trip_service(
    ctx: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
) -> TripService:
    return TripService(db, ctx)


@router.post("", response_model=TripPublishResponse, status_code=201)
def publish_trips(payload: TripPublishRequest, service: TripService = Depends(get_trip_service)) -> TripPublishResponse:
    return service.publish_trips(payload)


@router.post("/city-pair-price", response_model=CityPairPriceResponse)
def city_pair_price(payload: CityPairPriceRequest) -> CityPairPriceResponse:
    return TripService.city_pair_price(payload)


@router.get("", response_model=TripListResponse)
def list_trips(
    route_id: int | None = Query(None, ge=1),
    departure_date: date | None = Query(None),
    origin: str | None = Query(None, max_length=255),
    destination: str | None = Query(None, max_length=255),
    min_seats: int | None = Query(None, ge=0),
    visibility: TripVisibility | None = Query(None),
    include_sub_trips: bool = Query(True),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: TripService = Depends(get_trip_service),
) -> TripListResponse:
    filters = TripFilters(
        route_id=route_id,
        departure_date=departure_date,
        origin=origin,
        destination=destination,
        min_seats=min_seats,
        visibility=visibility,
        include_sub_trips=include_sub_trips,
    )
    return service.list_trips(filters, limit, offset)


@router.get("/{trip_id}", response_model=TripDetail)
def get_trip_detail(trip_id: int, service: TripService = Depends(get_trip_service)) -> TripDetail:
    return service.get_trip_detail(trip_id)


@router.patch("/{trip_id}", response_model=TripDetail)
def update_trip(trip_id: int, payload: TripUpdate, service: TripService = Depends(get_trip_service)) -> TripDetail:
    return service.update_trip(trip_id, payload)


@router.delete("/{trip_id}")
def delete_trip(trip_id: int, service: TripService = Depends(get_trip_service)) -> dict:
    service.delete_trip(trip_id)
    return {"trip_id": trip_id, "deleted": True}
