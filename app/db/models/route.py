from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, JSON, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BIGINT, Base


class Route(Base):
    __tablename__ = "routes"

    route_id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    origin: Mapped[str] = mapped_column(String(255))
    destination: Mapped[str] = mapped_column(String(255))
    # Ordered intermediate stops, origin and destination excluded
    stops: Mapped[list[str]] = mapped_column(JSON, default=list)
    company_id: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    trips: Mapped[list["Trip"]] = relationship(back_populates="route")

    __table_args__ = (Index("ix_routes_company_id", "company_id"),)

    @property
    def all_points(self) -> list[str]:
        return [self.origin, *(self.stops or []), self.destination]


__all__ = ["Route"]
