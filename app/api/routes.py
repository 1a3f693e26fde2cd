from fastapi import APIRouter

from app.api.bus_routes import router as bus_routes_router
from app.api.packages import router as packages_router
from app.api.public.health import router as health_router
from app.api.reservations import router as reservations_router
from app.api.trips import router as trips_router


api_router = APIRouter()
api_router.include_router(health_router)

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(bus_routes_router)
v1_router.include_router(trips_router)
v1_router.include_router(reservations_router)
v1_router.include_router(packages_router)

api_router.include_router(v1_router)
