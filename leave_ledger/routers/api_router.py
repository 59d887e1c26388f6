from fastapi import APIRouter
from leave_ledger.routers import (
    leave, credits, delegations, conversions, notifications, directory
)

# main.py only imports this hub
api_router = APIRouter()

api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(credits.router, tags=["Leave Credits"])
api_router.include_router(delegations.router, tags=["Delegations"])
api_router.include_router(conversions.router, tags=["Credit Conversions"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(directory.router, tags=["Directory"])
