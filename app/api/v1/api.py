# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import registrants, tickets, coupons, otp, registration_configs

# Create main API router
api_router = APIRouter()

api_router.include_router(
    registrants.router,
    prefix="/registrants",
    tags=["registrants"]
)

api_router.include_router(
    tickets.router,
    prefix="/tickets",
    tags=["tickets"]
)

api_router.include_router(
    coupons.router,
    prefix="/coupons",
    tags=["coupons"]
)

api_router.include_router(
    otp.router,
    prefix="/otp",
    tags=["otp"]
)

api_router.include_router(
    registration_configs.router,
    prefix="/registration-configs",
    tags=["registration-configs"]
)
