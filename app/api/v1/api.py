from fastapi import APIRouter

from app.api.v1.endpoints import appointments, public, settings

api_router = APIRouter()

# Appointment management endpoints
api_router.include_router(
    appointments.router, prefix="/appointments", tags=["appointments"]
)

# Booking settings and business hours
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])

# Public booking endpoints (customer-facing)
api_router.include_router(public.router, prefix="/public", tags=["public"])
