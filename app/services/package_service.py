from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Literal

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from app.api.deps import CompanyContext
from app.db.models.package import Package
from app.db.models.trip import Trip
from app.schemas.package import (
    PackageCreate,
    PackageDetail,
    PackageListResponse,
    PackagePaymentUpdate,
    PackageSeatsUpdate,
)
from app.services.reservation_service import apply_seat_change

logger = logging.getLogger(__name__)

DeliveryStatusFilter = Literal["pending", "delivered"]


class PackageService:
    def __init__(self, db: Session, ctx: CompanyContext):
        self.db = db
        self.ctx = ctx

    def create_package(self, payload: PackageCreate) -> PackageDetail:
        trip = self.db.get(Trip, payload.trip_id)
        if not trip or not self.ctx.owns(trip.company_id):
            raise HTTPException(status_code=404, detail="trip_not_found")
        if payload.uses_seats and trip.available_seats < payload.seats_quantity:
            raise HTTPException(status_code=409, detail="not_enough_seats")

        package = Package(
            trip_id=trip.trip_id,
            company_id=trip.company_id,
            sender_name=payload.sender_name,
            sender_last_name=payload.sender_last_name,
            sender_phone=payload.sender_phone,
            recipient_name=payload.recipient_name,
            recipient_last_name=payload.recipient_last_name,
            recipient_phone=payload.recipient_phone,
            description=payload.description,
            price=payload.price,
            uses_seats=payload.uses_seats,
            seats_quantity=payload.seats_quantity,
            is_paid=payload.is_paid,
            payment_method=payload.payment_method,
            delivery_status="pending",
            created_by=payload.created_by,
        )
        self.db.add(package)
        self.db.flush()
        apply_seat_change(self.db, trip.trip_id, -package.seat_count)

        self.db.commit()
        self.db.refresh(package)
        logger.info("Package %s on trip %s (seats=%s)", package.package_id, trip.trip_id, package.seat_count)
        return self._build_detail(package)

    def list_packages(
        self,
        trip_id: int | None,
        delivery_status: DeliveryStatusFilter | None,
        limit: int,
        offset: int,
    ) -> PackageListResponse:
        query = select(Package)
        if self.ctx.company_id is not None:
            query = query.where(Package.company_id == self.ctx.company_id)
        if trip_id is not None:
            query = query.where(Package.trip_id == trip_id)
        if delivery_status is not None:
            query = query.where(Package.delivery_status == delivery_status)
        query = query.order_by(desc(Package.package_id)).offset(offset).limit(limit + 1)
        rows = self.db.scalars(query).all()

        has_more = len(rows) > limit
        items = rows[:limit]
        return PackageListResponse(
            items=[self._build_detail(package) for package in items],
            next_offset=(offset + len(items)) if has_more else None,
            has_more=has_more,
        )

    def get_package(self, package_id: int) -> PackageDetail:
        return self._build_detail(self._get_package(package_id))

    def update_seats(self, package_id: int, payload: PackageSeatsUpdate) -> PackageDetail:
        package = self._get_package(package_id)
        old_seats = package.seat_count
        package.uses_seats = payload.uses_seats
        package.seats_quantity = payload.seats_quantity if payload.uses_seats else 0
        self.db.flush()
        apply_seat_change(self.db, package.trip_id, old_seats - package.seat_count)

        self.db.commit()
        self.db.refresh(package)
        return self._build_detail(package)

    def delete_package(self, package_id: int) -> None:
        package = self._get_package(package_id)
        trip_id = package.trip_id
        released = package.seat_count
        self.db.delete(package)
        self.db.flush()
        apply_seat_change(self.db, trip_id, released)
        self.db.commit()

    def mark_delivered(self, package_id: int) -> PackageDetail:
        package = self._get_package(package_id)
        if package.delivery_status == "delivered":
            raise HTTPException(status_code=400, detail="package_already_delivered")
        package.delivery_status = "delivered"
        package.delivered_at = datetime.now(UTC)
        self.db.commit()
        self.db.refresh(package)
        return self._build_detail(package)

    def mark_paid(self, package_id: int, payload: PackagePaymentUpdate) -> PackageDetail:
        package = self._get_package(package_id)
        package.is_paid = True
        package.payment_method = payload.payment_method
        self.db.commit()
        self.db.refresh(package)
        return self._build_detail(package)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _get_package(self, package_id: int) -> Package:
        package = self.db.get(Package, package_id)
        if not package or not self.ctx.owns(package.company_id):
            raise HTTPException(status_code=404, detail="package_not_found")
        return package

    def _build_detail(self, package: Package) -> PackageDetail:
        return PackageDetail(
            package_id=package.package_id,
            trip_id=package.trip_id,
            company_id=package.company_id,
            sender_name=package.sender_name,
            sender_last_name=package.sender_last_name,
            sender_phone=package.sender_phone,
            recipient_name=package.recipient_name,
            recipient_last_name=package.recipient_last_name,
            recipient_phone=package.recipient_phone,
            description=package.description,
            price=package.price,
            uses_seats=bool(package.uses_seats),
            seats_quantity=package.seats_quantity,
            is_paid=bool(package.is_paid),
            payment_method=package.payment_method,  # type: ignore[arg-type]
            delivery_status=package.delivery_status,  # type: ignore[arg-type]
            delivered_at=package.delivered_at,
            created_at=package.created_at,
            updated_at=package.updated_at,
        )
