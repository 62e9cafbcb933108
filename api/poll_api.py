import logging
from typing import List
from uuid import UUID
from fastapi import HTTPException, APIRouter, status
from fastapi_pagination import Page
from fastapi_pagination.ext.sqlalchemy import apaginate

from core.cache import poll_cache, user_polls_cache, poll_key, user_polls_key
from core.connection_manager import manager, poll_channel
from core.depends import AsyncDBSession, AuthenticatedUser, OptionalUser
from schemas.poll_schema import (
    CreatePollRequestSchema,
    UpdatePollRequestSchema,
    PollResponseSchema,
    PollDeletedSchema,
    PollResultsSchema,
)
from crud.poll_crud import poll_crud as PollCrud, PollVersionConflict
from crud.poll_option_crud import poll_option_crud as PollOptionCrud

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/polls",
)


def _poll_settings(poll: CreatePollRequestSchema) -> dict:
    return {
        "title": poll.title,
        "description": poll.description,
        "is_public": poll.is_public,
        "allow_multiple_votes": poll.allow_multiple_votes,
        "expires_at": poll.expires_at,
    }


def _invalidate_poll_caches(poll_uuid: UUID, creator_id: int) -> None:
    poll_cache.invalidate(poll_key(poll_uuid))
    user_polls_cache.invalidate(user_polls_key(creator_id))


@router.post("/", response_model=PollResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_poll(
    session: AsyncDBSession,
    poll: CreatePollRequestSchema,
    current_user: AuthenticatedUser
):
    try:
        async with session.begin():
            poll_data = {
                **_poll_settings(poll),
                "creator_id": current_user.id,
                "is_active": True,
            }
            created_poll = await PollCrud.create_poll(session, poll_data, poll.options)
            poll_uuid = created_poll.uuid

            # Expunge all objects from session to clear cache and ensure fresh data is fetched
            session.expunge_all()

            fresh_poll = await PollCrud.get_poll_by_uuid(session, poll_uuid)
            response_data = PollCrud.build_poll_response_data(fresh_poll)

        validated_response = PollResponseSchema.model_validate(response_data)
        user_polls_cache.invalidate(user_polls_key(current_user.id))
        logger.info(f"Poll {poll_uuid} created by {current_user.uuid}")

        if validated_response.is_public:
            await manager.broadcast({
                "type": "poll_created",
                "data": validated_response.model_dump(mode="json")
            })

        return validated_response

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Poll creation failed")
        raise HTTPException(status_code=500, detail=f"Failed to create poll: {str(e)}")


@router.get("/", response_model=Page[PollResponseSchema])
async def get_public_polls(
    session: AsyncDBSession,
):
    """Public, active polls, newest first."""
    try:
        async with session.begin():
            return await apaginate(
                session,
                PollCrud.public_polls_query(),
                transformer=lambda polls: [PollCrud.build_poll_response_data(p) for p in polls],
            )

    except Exception as e:
        logger.exception("Failed to fetch public polls")
        raise HTTPException(status_code=500, detail=f"Failed to fetch polls: {str(e)}")


@router.get("/mine", response_model=List[PollResponseSchema])
async def get_my_polls(
    session: AsyncDBSession,
    current_user: AuthenticatedUser
):
    cache_key = user_polls_key(current_user.id)
    cached = user_polls_cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        async with session.begin():
            polls = await PollCrud.get_polls_by_creator(session, current_user.id)
            response_list = [
                PollResponseSchema.model_validate(PollCrud.build_poll_response_data(poll))
                for poll in polls
            ]

        user_polls_cache.set(cache_key, response_list)
        return response_list

    except Exception as e:
        logger.exception("Failed to fetch polls for user")
        raise HTTPException(status_code=500, detail=f"Failed to fetch polls: {str(e)}")


@router.get("/{poll_uuid}", response_model=PollResponseSchema)
async def get_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
    current_user: OptionalUser
):
    """A single poll, visible when public or owned by the caller."""
    cached = poll_cache.get(poll_key(poll_uuid))
    if cached is not None and (
        cached.is_public or (current_user is not None and cached.creator_uuid == current_user.uuid)
    ):
        return cached

    try:
        async with session.begin():
            poll = await PollCrud.get_visible_poll(
                session,
                poll_uuid,
                viewer_id=current_user.id if current_user else None,
            )
            if not poll:
                raise HTTPException(
                    status_code=404,
                    detail="Poll not found or you don't have permission to access it"
                )
            validated_response = PollResponseSchema.model_validate(PollCrud.build_poll_response_data(poll))

        poll_cache.set(poll_key(poll_uuid), validated_response)
        return validated_response

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to fetch poll {poll_uuid}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch poll: {str(e)}")


@router.get("/{poll_uuid}/results", response_model=PollResultsSchema)
async def get_poll_results(
    session: AsyncDBSession,
    poll_uuid: UUID,
    current_user: OptionalUser
):
    """Per-option counts and percentages, read fresh from the counters."""
    try:
        async with session.begin():
            poll = await PollCrud.get_visible_poll(
                session,
                poll_uuid,
                viewer_id=current_user.id if current_user else None,
            )
            if not poll:
                raise HTTPException(
                    status_code=404,
                    detail="Poll not found or you don't have permission to access it"
                )
            rows = await PollOptionCrud.get_option_counts(session, poll.id)

        total_votes, results = PollOptionCrud.summarize_counts(rows)
        return PollResultsSchema(poll_uuid=poll_uuid, total_votes=total_votes, results=results)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to fetch results for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch results: {str(e)}")


@router.put("/{poll_uuid}", response_model=PollResponseSchema)
async def edit_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
    poll: UpdatePollRequestSchema,
    current_user: AuthenticatedUser
):
    """Replace a poll's settings and options. Existing votes are discarded."""
    try:
        async with session.begin():
            existing_poll = await PollCrud.get_owned_poll(session, poll_uuid, current_user.id)
            if not existing_poll:
                raise HTTPException(
                    status_code=404,
                    detail="Poll not found or you don't have permission to edit it"
                )

            if poll.version_id is not None and existing_poll.version_id != poll.version_id:
                raise HTTPException(status_code=409, detail="Poll version conflict")

            await PollCrud.replace_poll(
                session,
                existing_poll,
                _poll_settings(poll),
                poll.options,
                expected_version=existing_poll.version_id,
            )

            session.expunge_all()

            updated_poll = await PollCrud.get_poll_by_uuid(session, poll_uuid)
            response_data = PollCrud.build_poll_response_data(updated_poll)

        validated_response = PollResponseSchema.model_validate(response_data)
        _invalidate_poll_caches(poll_uuid, current_user.id)
        logger.info(f"Poll {poll_uuid} replaced by {current_user.uuid}")

        await manager.broadcast({
            "type": "poll_updated",
            "data": validated_response.model_dump(mode="json")
        }, channel=poll_channel(poll_uuid))

        return validated_response

    except PollVersionConflict:
        raise HTTPException(status_code=409, detail="Poll version conflict")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to update poll {poll_uuid}")
        raise HTTPException(status_code=500, detail=f"Failed to update poll: {str(e)}")


@router.delete("/{poll_uuid}", response_model=PollDeletedSchema)
async def delete_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
    current_user: AuthenticatedUser
):
    try:
        async with session.begin():
            existing_poll = await PollCrud.get_owned_poll(session, poll_uuid, current_user.id)
            if not existing_poll:
                raise HTTPException(
                    status_code=404,
                    detail="Poll not found or you don't have permission to delete it"
                )

            await PollCrud.soft_delete_poll(session, existing_poll.id)

        _invalidate_poll_caches(poll_uuid, current_user.id)
        logger.info(f"Poll {poll_uuid} deleted by {current_user.uuid}")

        await manager.broadcast({
            "type": "poll_deleted",
            "data": {"uuid": str(poll_uuid)}
        }, channel=poll_channel(poll_uuid))

        return PollDeletedSchema(message="Poll deleted successfully", uuid=poll_uuid)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to delete poll {poll_uuid}")
        raise HTTPException(status_code=500, detail=f"Failed to delete poll: {str(e)}")
