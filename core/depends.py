from typing import Annotated, AsyncGenerator, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status
from typing_extensions import TypeAlias

from core.async_engine import AsyncSessionLocal
from core.auth import bearer_scheme, decode_access_token
from core.settings import settings
from crud.user_crud import user_crud as UserCrud
from models import UserModel


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session

AsyncDBSession: TypeAlias = Annotated[AsyncSession, Depends(get_session)]


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    # The Authorization header wins over the session cookie
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.ACCESS_TOKEN_COOKIE)


async def _resolve_user(session: AsyncSession, token: Optional[str]) -> Optional[UserModel]:
    if token is None:
        return None

    user_uuid = decode_access_token(token)
    if user_uuid is None:
        return None

    try:
        parsed_uuid = UUID(str(user_uuid))
    except ValueError:
        return None

    user = await UserCrud.get_user_by_uuid(session, parsed_uuid)
    # Close the read transaction so route handlers can open their own with session.begin()
    await session.commit()
    return user


async def get_current_user(
    request: Request,
    session: AsyncDBSession,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]
) -> UserModel:
    user = await _resolve_user(session, _extract_token(request, credentials))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    request: Request,
    session: AsyncDBSession,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]
) -> Optional[UserModel]:
    return await _resolve_user(session, _extract_token(request, credentials))

AuthenticatedUser: TypeAlias = Annotated[UserModel, Depends(get_current_user)]
OptionalUser: TypeAlias = Annotated[Optional[UserModel], Depends(get_optional_user)]
