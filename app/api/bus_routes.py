from fastapi import APIRouter, Depends, Query

from app.api.deps import CompanyContext, get_company_context
from app.db.session import get_db
from app.schemas.route import (
    RouteCreate,
    RouteDetail,
    RouteListResponse,
    RouteSegmentsResponse,
    RouteUpdate,
)
from app.services.route_service import RouteService

router = APIRouter(prefix="/routes", tags=["routes"])


def get_route_service(
    ctx: CompanyContext = Depends(get_company_context),
    db=Depends(get_db),
) -> RouteService:
    return RouteService(db, ctx)


@router.post("", response_model=RouteDetail, status_code=201)
def create_route(payload: RouteCreate, service: RouteService = Depends(get_route_service)) -> RouteDetail:
    return service.create_route(payload)


@router.get("", response_model=RouteListResponse)
def list_routes(
    search: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: RouteService = Depends(get_route_service),
) -> RouteListResponse:
    return service.list_routes(search, limit, offset)


@router.get("/{route_id}", response_model=RouteDetail)
def get_route(route_id: int, service: RouteService = Depends(get_route_service)) -> RouteDetail:
    return service.get_route(route_id)


@router.put("/{route_id}", response_model=RouteDetail)
def update_route(
    route_id: int,
    payload: RouteUpdate,
    service: RouteService = Depends(get_route_service),
) -> RouteDetail:
    return service.update_route(route_id, payload)


@router.delete("/{route_id}", status_code=204)
def delete_route(route_id: int, service: RouteService = Depends(get_route_service)) -> None:
    service.delete_route(route_id)


@router.get("/{route_id}/segments", response_model=RouteSegmentsResponse)
def get_route_segments(route_id: int, service: RouteService = Depends(get_route_service)) -> RouteSegmentsResponse:
    return service.get_segments(route_id)
