"""create routes, trips, reservations and packages

Revision ID: 5e1c0a7d9b21
Revises:
Create Date: 2026-10-17 09:12:40.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5e1c0a7d9b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TRIP_VISIBILITY = sa.Enum("published", "hidden", "cancelled", name="trip_visibility")
PAYMENT_METHOD = sa.Enum("cash", "transfer", name="payment_method")
PAYMENT_STATUS = sa.Enum("pending", "paid", "cancelled", name="payment_status")
RESERVATION_STATUS = sa.Enum("confirmed", "canceled", name="reservation_status")
DELIVERY_STATUS = sa.Enum("pending", "delivered", name="package_delivery_status")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            server_onupdate=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "routes",
        sa.Column("route_id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("origin", sa.String(length=255), nullable=False),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("stops", sa.JSON(), nullable=True),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_routes_company_id", "routes", ["company_id"])

    op.create_table(
        "trips",
        sa.Column("trip_id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.BigInteger(), sa.ForeignKey("routes.route_id"), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.String(length=24), nullable=True),
        sa.Column("arrival_time", sa.String(length=24), nullable=True),
        sa.Column("vehicle_id", sa.BigInteger(), nullable=True),
        sa.Column("driver_id", sa.BigInteger(), nullable=True),
        sa.Column("visibility", TRIP_VISIBILITY, nullable=False, server_default="published"),
        sa.Column("is_sub_trip", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "parent_trip_id",
            sa.BigInteger(),
            sa.ForeignKey("trips.trip_id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("segment_origin", sa.String(length=255), nullable=True),
        sa.Column("segment_destination", sa.String(length=255), nullable=True),
        sa.Column("segment_prices", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "available_seats >= 0 AND available_seats <= capacity",
            name="ck_trips_available_seats_bounds",
        ),
    )
    op.create_index("ix_trips_route_date", "trips", ["route_id", "departure_date", "is_sub_trip"])
    op.create_index("ix_trips_parent", "trips", ["parent_trip_id"])
    op.create_index("ix_trips_company_date", "trips", ["company_id", "departure_date"])

    op.create_table(
        "reservations",
        sa.Column("reservation_id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_id",
            sa.BigInteger(),
            sa.ForeignKey("trips.trip_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("advance_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("payment_method", PAYMENT_METHOD, nullable=False, server_default="cash"),
        sa.Column("payment_status", PAYMENT_STATUS, nullable=False, server_default="pending"),
        sa.Column("status", RESERVATION_STATUS, nullable=False, server_default="confirmed"),
        sa.Column("created_by", sa.BigInteger(), nullable=True),
        sa.Column("marked_as_paid_at", sa.TIMESTAMP(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_reservations_trip_status", "reservations", ["trip_id", "status"])
    op.create_index("ix_reservations_company_created", "reservations", ["company_id", "created_at"])

    op.create_table(
        "passengers",
        sa.Column("passenger_id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "reservation_id",
            sa.BigInteger(),
            sa.ForeignKey("reservations.reservation_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
    )
    op.create_index("ix_passengers_reservation_id", "passengers", ["reservation_id"])

    op.create_table(
        "packages",
        sa.Column("package_id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_id",
            sa.BigInteger(),
            sa.ForeignKey("trips.trip_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("sender_name", sa.String(length=120), nullable=False),
        sa.Column("sender_last_name", sa.String(length=120), nullable=False),
        sa.Column("sender_phone", sa.String(length=32), nullable=False),
        sa.Column("recipient_name", sa.String(length=120), nullable=False),
        sa.Column("recipient_last_name", sa.String(length=120), nullable=False),
        sa.Column("recipient_phone", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("uses_seats", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("seats_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_method", PAYMENT_METHOD, nullable=True),
        sa.Column("delivery_status", DELIVERY_STATUS, nullable=False, server_default="pending"),
        sa.Column("delivered_at", sa.TIMESTAMP(), nullable=True),
        sa.Column("created_by", sa.BigInteger(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_packages_trip_id", "packages", ["trip_id"])


def downgrade() -> None:
    op.drop_index("ix_packages_trip_id", table_name="packages")
    op.drop_table("packages")
    op.drop_index("ix_passengers_reservation_id", table_name="passengers")
    op.drop_table("passengers")
    op.drop_index("ix_reservations_company_created", table_name="reservations")
    op.drop_index("ix_reservations_trip_status", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_trips_company_date", table_name="trips")
    op.drop_index("ix_trips_parent", table_name="trips")
    op.drop_index("ix_trips_route_date", table_name="trips")
    op.drop_table("trips")
    op.drop_index("ix_routes_company_id", table_name="routes")
    op.drop_table("routes")

    bind = op.get_bind()
    for enum in (DELIVERY_STATUS, RESERVATION_STATUS, PAYMENT_STATUS, PAYMENT_METHOD, TRIP_VISIBILITY):
        enum.drop(bind, checkfirst=True)
