from fastapi import APIRouter, Request

from api.auth_api import router as auth_router
from api.poll_api import router as poll_router
from api.vote_api import router as vote_router
from core.settings import settings
from core.security import generate_csrf_token


api_router = APIRouter(prefix=settings.API_PREFIX)
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(poll_router, tags=["poll"])
api_router.include_router(vote_router, tags=["vote"])


@api_router.get("/csrf", tags=["auth"])
async def get_csrf_token(request: Request):
    """Return the caller's CSRF token; a new one is also set as the cookie."""
    token = request.cookies.get(settings.CSRF_COOKIE_NAME)
    if not token:
        token = generate_csrf_token()
        request.state.csrf_token = token
    return {"csrf_token": token}
