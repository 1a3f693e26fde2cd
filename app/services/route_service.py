from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import desc, exists, select
from sqlalchemy.orm import Session

from app.api.deps import CompanyContext
from app.core.cache import cached_json, invalidate
from app.core.config import settings
from app.db.models.route import Route
from app.db.models.trip import Trip
from app.schemas.route import (
    RouteCreate,
    RouteDetail,
    RouteListResponse,
    RouteSegmentsResponse,
    RouteUpdate,
    SegmentOutput,
)
from app.services.route_segments import RouteTopology, generate_segments

logger = logging.getLogger(__name__)


def segments_cache_key(route_id: int) -> str:
    return f"route_segments:{route_id}"


class RouteService:
    def __init__(self, db: Session, ctx: CompanyContext):
        self.db = db
        self.ctx = ctx

    def create_route(self, payload: RouteCreate) -> RouteDetail:
        route = Route(
            name=payload.name,
            origin=payload.origin,
            destination=payload.destination,
            stops=list(payload.stops),
            company_id=self.ctx.company_id,
        )
        self.db.add(route)
        self.db.commit()
        self.db.refresh(route)
        logger.info("Created route %s (%s -> %s, %s stops)", route.route_id, route.origin, route.destination, len(route.stops))
        return self._build_detail(route)

    def list_routes(self, search: str | None, limit: int, offset: int) -> RouteListResponse:
        query = select(Route)
        if self.ctx.company_id is not None:
            query = query.where(Route.company_id == self.ctx.company_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                Route.name.ilike(pattern) | Route.origin.ilike(pattern) | Route.destination.ilike(pattern)
            )
        query = query.order_by(desc(Route.route_id)).offset(offset).limit(limit + 1)
        rows = self.db.scalars(query).all()

        has_more = len(rows) > limit
        items = rows[:limit]
        return RouteListResponse(
            items=[self._build_detail(route) for route in items],
            next_offset=(offset + len(items)) if has_more else None,
            has_more=has_more,
        )

    def get_route(self, route_id: int) -> RouteDetail:
        return self._build_detail(self._get_route(route_id))

    def update_route(self, route_id: int, payload: RouteUpdate) -> RouteDetail:
        route = self._get_route(route_id)
        self._ensure_no_trips(route)
        route.name = payload.name
        route.origin = payload.origin
        route.destination = payload.destination
        route.stops = list(payload.stops)
        self.db.commit()
        self.db.refresh(route)
        invalidate(segments_cache_key(route.route_id))
        return self._build_detail(route)

    def delete_route(self, route_id: int) -> None:
        route = self._get_route(route_id)
        self._ensure_no_trips(route)
        self.db.delete(route)
        self.db.commit()
        invalidate(segments_cache_key(route_id))

    def get_segments(self, route_id: int) -> RouteSegmentsResponse:
        route = self._get_route(route_id)
        topology = RouteTopology.from_route(route)

        def loader() -> dict:
            return RouteSegmentsResponse(
                route_id=route.route_id,
                points=topology.all_points,
                segments=[
                    SegmentOutput(origin=segment.origin, destination=segment.destination)
                    for segment in generate_segments(topology)
                ],
            ).model_dump()

        data = cached_json(
            segments_cache_key(route.route_id),
            settings.route_segments_cache_ttl_seconds,
            loader,
        )
        return RouteSegmentsResponse.model_validate(data)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _get_route(self, route_id: int) -> Route:
        route = self.db.get(Route, route_id)
        if not route or not self.ctx.owns(route.company_id):
            raise HTTPException(status_code=404, detail="route_not_found")
        return route

    def _ensure_no_trips(self, route: Route) -> None:
        has_trips = self.db.scalar(select(exists().where(Trip.route_id == route.route_id)))
        if has_trips:
            raise HTTPException(status_code=409, detail="route_has_trips")

    def _build_detail(self, route: Route) -> RouteDetail:
        return RouteDetail(
            route_id=route.route_id,
            name=route.name,
            origin=route.origin,
            destination=route.destination,
            stops=list(route.stops or []),
            company_id=route.company_id,
            created_at=route.created_at,
            updated_at=route.updated_at,
        )
