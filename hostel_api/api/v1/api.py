from fastapi import APIRouter, Depends

from hostel_api.api.dependencies import get_current_user
from hostel_api.api.v1.endpoints.auth import login, roles

api_router = APIRouter()

# Authentication routes
api_router.include_router(login.router, prefix="/auth", tags=["Authentication"])

# Role management; every route needs a signed-in caller
api_router.include_router(
    roles.router,
    prefix="/role",
    tags=["Roles"],
    dependencies=[Depends(get_current_user)],
)
