"""API v1 aggregated router.

All v1 endpoints are registered here and mounted under /api/v1 in main.py.
"""

from fastapi import APIRouter

from api.routes import (
    admin,
    analytics,
    auth,
    checkout,
    earnings,
    purchases,
    reviews,
    tags,
    webhooks,
    workflows,
)

api_v1_router = APIRouter()

# Authentication
api_v1_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Catalogue
api_v1_router.include_router(
    workflows.router,
    prefix="/workflows",
    tags=["Workflows"],
)

# Reviews (/workflows/{id}/reviews and /reviews/{id})
api_v1_router.include_router(
    reviews.router,
    tags=["Reviews"],
)

api_v1_router.include_router(
    tags.router,
    prefix="/tags",
    tags=["Tags"],
)

# Payments
api_v1_router.include_router(
    checkout.router,
    prefix="/checkout",
    tags=["Checkout"],
)

api_v1_router.include_router(
    purchases.router,
    prefix="/purchases",
    tags=["Purchases"],
)

api_v1_router.include_router(
    earnings.router,
    prefix="/earnings",
    tags=["Earnings"],
)

# Signed payment processor callbacks (no bearer auth)
api_v1_router.include_router(
    webhooks.router,
    prefix="/webhooks",
    tags=["Webhooks"],
)

# Dashboards
api_v1_router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["Analytics"],
)

# Admin
api_v1_router.include_router(
    admin.router,
    prefix="/admin",
    tags=["Admin"],
)
