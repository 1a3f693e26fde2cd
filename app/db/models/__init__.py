from app.db.models.package import Package
from app.db.models.reservation import Passenger, Reservation
from app.db.models.route import Route
from app.db.models.trip import Trip
from app.db.base import Base

__all__ = [
    "Base",
    "Route",
    "Trip",
    "Reservation",
    "Passenger",
    "Package",
]
