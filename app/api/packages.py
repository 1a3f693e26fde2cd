from fastapi import APIRouter, Depends, Query

from app.api.deps import CompanyContext, get_company_context
from app.db.session import get_db
from app.schemas.package import (
    PackageCreate,
    PackageDetail,
    PackageListResponse,
    PackagePaymentUpdate,
    PackageSeatsUpdate,
)
from app.services.package_service import DeliveryStatusFilter, PackageService

router = APIRouter(prefix="/packages", tags=["packages"])


def get_package_service(
    ctx: CompanyContext = Depends(get_company_context),
    db=Depends(get_db),
) -> PackageService:
    return PackageService(db, ctx)


@router.post("", response_model=PackageDetail, status_code=201)
def create_package(payload: PackageCreate, service: PackageService = Depends(get_package_service)) -> PackageDetail:
    return service.create_package(payload)


@router.get("", response_model=PackageListResponse)
def list_packages(
    trip_id: int | None = Query(None, ge=1),
    delivery_status: DeliveryStatusFilter | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: PackageService = Depends(get_package_service),
) -> PackageListResponse:
    return service.list_packages(trip_id, delivery_status, limit, offset)


@router.get("/{package_id}", response_model=PackageDetail)
def get_package(package_id: int, service: PackageService = Depends(get_package_service)) -> PackageDetail:
    return service.get_package(package_id)


@router.patch("/{package_id}/seats", response_model=PackageDetail)
def update_package_seats(
    package_id: int,
    payload: PackageSeatsUpdate,
    service: PackageService = Depends(get_package_service),
) -> PackageDetail:
    return service.update_seats(package_id, payload)


@router.post("/{package_id}/deliver", response_model=PackageDetail)
def mark_delivered(package_id: int, service: PackageService = Depends(get_package_service)) -> PackageDetail:
    return service.mark_delivered(package_id)


@router.post("/{package_id}/mark-paid", response_model=PackageDetail)
def mark_paid(
    package_id: int,
    payload: PackagePaymentUpdate,
    service: PackageService = Depends(get_package_service),
) -> PackageDetail:
    return service.mark_paid(package_id, payload)


@router.delete("/{package_id}", status_code=204)
def delete_package(package_id: int, service: PackageService = Depends(get_package_service)) -> None:
    service.delete_package(package_id)
