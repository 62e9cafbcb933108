import logging
from fastapi import HTTPException, APIRouter, Request, status
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from core.cache import poll_cache, user_polls_cache, poll_key, user_polls_key
from core.connection_manager import manager, poll_channel
from core.depends import AsyncDBSession, OptionalUser
from crud.poll_crud import poll_crud as PollCrud, is_poll_expired
from crud.poll_option_crud import poll_option_crud as PollOptionCrud
from crud.vote_crud import vote_crud as VoteCrud
from schemas.vote_schema import VoteRequestSchema, VoteResponseSchema, UpdatedOptionSchema

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/votes",
)

ALREADY_VOTED = "You have already voted on this poll"


@router.post("", response_model=VoteResponseSchema, status_code=status.HTTP_201_CREATED)
async def submit_vote(
    request: Request,
    session: AsyncDBSession,
    current_user: OptionalUser
):
    """Record the caller's choice(s) on a public, unexpired poll.

    The body is validated here rather than by FastAPI so that an anonymous
    caller gets a 401 before any complaint about the payload.
    """
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="You must be logged in to vote")

    try:
        body = await request.json()
        vote_data = VoteRequestSchema.model_validate(body)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid vote data", "details": e.errors(include_url=False, include_context=False)},
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid vote data", "details": []},
        )

    try:
        async with session.begin():
            poll = await PollCrud.get_votable_poll(session, vote_data.poll_id)
            if not poll:
                raise HTTPException(status_code=404, detail="Poll not found or not accessible")

            if is_poll_expired(poll):
                raise HTTPException(status_code=400, detail="Poll has expired")

            if await VoteCrud.has_voted(session, current_user.id, poll.id):
                raise HTTPException(status_code=400, detail=ALREADY_VOTED)

            valid_options = await PollOptionCrud.get_options_by_uuids_for_poll(
                session, poll.id, vote_data.option_ids
            )
            # Duplicate ids in the request also fail this check
            if len(valid_options) != len(vote_data.option_ids):
                raise HTTPException(status_code=400, detail="Invalid poll options")

            if not poll.allow_multiple_votes and len(vote_data.option_ids) > 1:
                raise HTTPException(status_code=400, detail="This poll only allows one choice")

            options_by_uuid = {opt.uuid: opt.id for opt in valid_options}
            await VoteCrud.create_votes(
                session,
                current_user.id,
                poll.id,
                [options_by_uuid[option_uuid] for option_uuid in vote_data.option_ids],
            )

            rows = await PollOptionCrud.get_option_counts(session, poll.id)
            creator_id = poll.creator_id

    except HTTPException:
        raise
    except IntegrityError:
        # A concurrent submission from the same user won the unique constraint
        await session.rollback()
        raise HTTPException(status_code=400, detail=ALREADY_VOTED)
    except Exception as e:
        await session.rollback()
        logger.exception(f"Failed to record vote on poll {vote_data.poll_id}")
        raise HTTPException(status_code=500, detail=f"Failed to record vote: {str(e)}")

    poll_cache.invalidate(poll_key(vote_data.poll_id))
    user_polls_cache.invalidate(user_polls_key(creator_id))
    logger.info(f"User {current_user.uuid} voted on poll {vote_data.poll_id}")

    total_votes, results = PollOptionCrud.summarize_counts(rows)
    await manager.broadcast({
        "type": "poll_voted",
        "data": {
            "poll_uuid": str(vote_data.poll_id),
            "total_votes": total_votes,
            "options": [
                {**result, "uuid": str(result["uuid"])}
                for result in results
            ],
        }
    }, channel=poll_channel(vote_data.poll_id))

    return VoteResponseSchema(
        success=True,
        updated_options=[
            UpdatedOptionSchema(id=row.uuid, poll_id=row.poll_uuid, vote_count=row.vote_count)
            for row in rows
        ],
    )
