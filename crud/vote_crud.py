from collections import defaultdict
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import core.events  # noqa: F401  registers the vote counter listeners
from models import Vote, Poll, PollOption
from schemas.user_schema import VotedPollInfo


class VoteCrud:

    def __init__(self):
        self.table = Vote

    async def has_voted(self, session: AsyncSession, user_id: int, poll_id: int) -> bool:
        stmt = (
            select(Vote.id)
            .where(Vote.poll_id == poll_id, Vote.user_id == user_id)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.first() is not None

    async def create_votes(
        self,
        session: AsyncSession,
        user_id: int,
        poll_id: int,
        option_ids: List[int],
    ) -> Sequence[Vote]:
        """Insert one vote row per option; the flush bumps each option's vote_count."""
        votes = [Vote(poll_id=poll_id, option_id=option_id, user_id=user_id) for option_id in option_ids]
        session.add_all(votes)
        await session.flush()
        return votes

    async def delete_vote(self, session: AsyncSession, vote: Vote) -> None:
        await session.delete(vote)
        await session.flush()

    async def get_voted_polls_info(self, session: AsyncSession, user_id: int) -> List[VotedPollInfo]:
        stmt = (
            select(
                Poll.uuid.label("poll_uuid"),
                PollOption.uuid.label("option_uuid"),
            )
            .select_from(Vote)
            .join(Poll, Vote.poll_id == Poll.id)
            .join(PollOption, Vote.option_id == PollOption.id)
            .where(Vote.user_id == user_id, Poll.is_active == True)
            .order_by(Vote.created_at, PollOption.order_index)
        )
        result = await session.execute(stmt)

        grouped = defaultdict(list)
        for row in result.fetchall():
            grouped[row.poll_uuid].append(row.option_uuid)

        return [
            VotedPollInfo(poll_uuid=poll_uuid, option_uuids=option_uuids)
            for poll_uuid, option_uuids in grouped.items()
        ]


vote_crud = VoteCrud()
