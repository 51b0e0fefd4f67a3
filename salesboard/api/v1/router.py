from fastapi import APIRouter

from salesboard.api.v1 import auth, campaigns, companies, health, invitations, live, sales, users


def build_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(auth.router)
    api_router.include_router(companies.router)
    api_router.include_router(users.router)
    api_router.include_router(invitations.router)
    api_router.include_router(campaigns.router)
    api_router.include_router(sales.router)
    api_router.include_router(live.router)
    return api_router
