from fastapi import APIRouter
from kts.api.v1 import audit, devices, usage

api_router = APIRouter(prefix="/v1")
api_router.include_router(devices.router, prefix="/devices", tags=["devices"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
