import logging
from datetime import timedelta
from fastapi import HTTPException, APIRouter, Response, status

from core.depends import AsyncDBSession, AuthenticatedUser
from core.auth import create_access_token
from core.settings import settings
from schemas.user_schema import UserCreate, UserLogin, UserResponse, Token, UserMeResponse
from crud.user_crud import user_crud as UserCrud
from crud.poll_crud import poll_crud as PollCrud
from crud.vote_crud import vote_crud as VoteCrud

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    session: AsyncDBSession,
    user_data: UserCreate
):
    try:
        async with session.begin():
            existing_user = await UserCrud.get_user_by_email(session, user_data.email)
            if existing_user:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="User with this email already exists"
                )

            user = await UserCrud.create_user(session, user_data.model_dump())

        logger.info(f"Registered user {user.uuid}")
        return UserResponse.model_validate(user)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("User registration failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create user: {str(e)}"
        )


@router.post("/login", response_model=Token)
async def login(
    session: AsyncDBSession,
    credentials: UserLogin,
    response: Response
):
    """Authenticate user, return an access token and set it as the session cookie."""
    try:
        async with session.begin():
            user = await UserCrud.authenticate(session, credentials.email, credentials.password)
            if not user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Incorrect email or password",
                    headers={"WWW-Authenticate": "Bearer"},
                )

            access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
            access_token = create_access_token(
                data={"sub": str(user.uuid)},
                expires_delta=access_token_expires
            )

        response.set_cookie(
            settings.ACCESS_TOKEN_COOKIE,
            access_token,
            max_age=int(access_token_expires.total_seconds()),
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
            path="/",
        )
        return Token(access_token=access_token, token_type="bearer")

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Login failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to authenticate user: {str(e)}"
        )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout():
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE, path="/")
    return response


@router.get("/me", response_model=UserMeResponse)
async def get_current_user_info(
    session: AsyncDBSession,
    current_user: AuthenticatedUser
):
    """Get current user info including created polls and the options they voted for."""
    try:
        async with session.begin():
            created_poll_uuids = await PollCrud.get_poll_uuids_by_creator(session, current_user.id)
            voted_polls = await VoteCrud.get_voted_polls_info(session, current_user.id)

        return UserMeResponse(
            uuid=current_user.uuid,
            email=current_user.email,
            display_name=current_user.display_name,
            created_at=current_user.created_at,
            created_poll_uuids=created_poll_uuids,
            voted_polls=voted_polls
        )

    except Exception as e:
        logger.exception("Failed to fetch current user")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch user data: {str(e)}"
        )
