"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from travelbuddy.api.routes import auth, users, travel_plans, coupons, payments

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(travel_plans.router)
api_router.include_router(coupons.router)
api_router.include_router(payments.router)
