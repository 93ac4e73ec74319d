from fastapi import APIRouter

# Public: availability & stats
from app.api.v1.public.availability import router as availability_router, stats_router

# Public: reservations & package bookings
from app.api.v1.public.reservations import router as reservations_router
from app.api.v1.public.package_tours import router as package_tours_router

# Public: storefront webhook
from app.api.v1.public.webhooks import router as webhooks_router

# Admin
from app.api.v1.admin.activities import router as admin_activities_router
from app.api.v1.admin.package_tours import router as admin_package_tours_router
from app.api.v1.admin.license import router as admin_license_router

api_router = APIRouter()

# --- Public: availability (adds /{activity_id}/availability to /activities prefix) ---
api_router.include_router(availability_router)
api_router.include_router(stats_router)

# --- Public: reservations ---
api_router.include_router(reservations_router)
api_router.include_router(package_tours_router)

# --- Webhooks ---
api_router.include_router(webhooks_router)

# --- Admin ---
api_router.include_router(admin_activities_router)
api_router.include_router(admin_package_tours_router)
api_router.include_router(admin_license_router)
