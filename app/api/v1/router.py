"""
API v1 router setup
All scheduling routes are scoped to one clinician: /clinicians/{clinician_id}/...
"""
from fastapi import APIRouter

from app.api.v1.dashboard import availability, appointments

api_v1_router = APIRouter()

# ============================================================================
# AVAILABILITY ROUTES
# ============================================================================
api_v1_router.include_router(
    availability.router,
    # No prefix needed - availability.router already has the clinician prefix
    tags=["Availability"]
)

# ============================================================================
# APPOINTMENT ROUTES
# ============================================================================
api_v1_router.include_router(
    appointments.router,
    tags=["Appointments"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    """
    return {
        "version": "1.0",
        "resources": {
            "availability": "/api/v1/clinicians/{clinician_id}/availability",
            "appointments": "/api/v1/clinicians/{clinician_id}/appointments"
        },
        "conventions": {
            "dates": "YYYY-MM-DD, local to the given time_zone",
            "times": "HH:MM local wall clock",
            "instants": "ISO 8601 UTC"
        }
    }
