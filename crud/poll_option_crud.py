from typing import List, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Poll, PollOption


class PollOptionCrud:
    def __init__(self):
        self.table = PollOption

    async def get_options_by_uuids_for_poll(
        self,
        session: AsyncSession,
        poll_id: int,
        option_uuids: List[UUID],
    ) -> Sequence[PollOption]:
        """Return the options of ``poll_id`` whose uuid is among ``option_uuids``."""
        stmt = (
            select(PollOption)
            .where(PollOption.poll_id == poll_id)
            .where(PollOption.uuid.in_(option_uuids))
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_option_counts(self, session: AsyncSession, poll_id: int):
        """Read counts straight from the table, bypassing objects cached in the session."""
        stmt = (
            select(
                PollOption.uuid,
                PollOption.text,
                PollOption.vote_count,
                Poll.uuid.label("poll_uuid"),
            )
            .join(Poll, Poll.id == PollOption.poll_id)
            .where(PollOption.poll_id == poll_id)
            .order_by(PollOption.order_index)
        )
        result = await session.execute(stmt)
        return result.fetchall()

    @staticmethod
    def summarize_counts(rows) -> tuple[int, list[dict]]:
        """Total votes plus per-option counts and percentages rounded to one decimal."""
        total_votes = sum(row.vote_count for row in rows)
        results = []
        for row in rows:
            percentage = round(row.vote_count / total_votes * 100, 1) if total_votes > 0 else 0.0
            results.append({
                "uuid": row.uuid,
                "text": row.text,
                "vote_count": row.vote_count,
                "percentage": percentage,
            })
        return total_votes, results


poll_option_crud = PollOptionCrud()
