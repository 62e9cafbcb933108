from datetime import datetime, timezone
from typing import List, Sequence, Optional, Dict, Any
from uuid import UUID
from sqlalchemy import Select, delete, update, select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import Poll, PollOption, Vote
from schemas.poll_schema import PollOptionSchema


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_poll_expired(poll: Poll, now: Optional[datetime] = None) -> bool:
    expires_at = as_utc(poll.expires_at)
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.now(timezone.utc))


class PollVersionConflict(Exception):
    pass


class PollCrud:
    def __init__(self):
        self.table = Poll

    def _with_relations(self, stmt: Select) -> Select:
        return stmt.options(selectinload(Poll.poll_options), selectinload(Poll.creator))

    async def create_poll(self, session: AsyncSession, poll_data: dict, options: List[str]) -> Poll:
        """Insert a poll and its options; options keep the order they were given in."""
        poll = Poll(**poll_data)
        poll.poll_options = [
            PollOption(text=text, order_index=index, vote_count=0)
            for index, text in enumerate(options)
        ]
        session.add(poll)
        await session.flush()
        return poll

    async def get_poll_by_uuid(self, session: AsyncSession, poll_uuid: UUID) -> Optional[Poll]:
        stmt = self._with_relations(
            select(Poll).where(Poll.uuid == poll_uuid, Poll.is_active == True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_visible_poll(
        self,
        session: AsyncSession,
        poll_uuid: UUID,
        viewer_id: Optional[int] = None,
    ) -> Optional[Poll]:
        """Fetch a poll the viewer may read: public polls, or private polls they created."""
        visibility = Poll.is_public == True
        if viewer_id is not None:
            visibility = or_(visibility, Poll.creator_id == viewer_id)
        stmt = self._with_relations(
            select(Poll).where(Poll.uuid == poll_uuid, Poll.is_active == True, visibility)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_owned_poll(self, session: AsyncSession, poll_uuid: UUID, owner_id: int) -> Optional[Poll]:
        stmt = self._with_relations(
            select(Poll).where(
                Poll.uuid == poll_uuid,
                Poll.is_active == True,
                Poll.creator_id == owner_id,
            )
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_votable_poll(self, session: AsyncSession, poll_uuid: UUID) -> Optional[Poll]:
        """Lock a public, active poll row for the duration of a vote submission."""
        stmt = (
            select(Poll)
            .where(Poll.uuid == poll_uuid, Poll.is_active == True, Poll.is_public == True)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    def public_polls_query(self) -> Select:
        return self._with_relations(
            select(Poll)
            .where(Poll.is_active == True, Poll.is_public == True)
            .order_by(Poll.created_at.desc(), Poll.id.desc())
        )

    async def get_polls_by_creator(self, session: AsyncSession, creator_id: int) -> Sequence[Poll]:
        stmt = self._with_relations(
            select(Poll)
            .where(Poll.creator_id == creator_id, Poll.is_active == True)
            .order_by(Poll.created_at.desc(), Poll.id.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_poll_uuids_by_creator(self, session: AsyncSession, creator_id: int) -> List[UUID]:
        stmt = (
            select(Poll.uuid)
            .where(Poll.creator_id == creator_id, Poll.is_active == True)
            .order_by(Poll.created_at.desc())
        )
        result = await session.execute(stmt)
        return [row[0] for row in result.fetchall()]

    async def replace_poll(
        self,
        session: AsyncSession,
        poll: Poll,
        poll_data: dict,
        options: List[str],
        expected_version: Optional[int] = None,
    ) -> None:
        """Overwrite a poll's settings and swap its options for a fresh set.

        Votes on the old options are discarded along with the options.
        """
        conditions = [Poll.id == poll.id]
        if expected_version is not None:
            conditions.append(Poll.version_id == expected_version)

        stmt = (
            update(Poll)
            .where(*conditions)
            .values(**poll_data, version_id=Poll.version_id + 1)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            raise PollVersionConflict(f"Poll {poll.uuid} was modified concurrently")

        await session.execute(delete(Vote).where(Vote.poll_id == poll.id))
        await session.execute(delete(PollOption).where(PollOption.poll_id == poll.id))

        session.add_all([
            PollOption(poll_id=poll.id, text=text, order_index=index, vote_count=0)
            for index, text in enumerate(options)
        ])
        await session.flush()

    async def soft_delete_poll(self, session: AsyncSession, poll_id: int) -> None:
        stmt = (
            update(Poll)
            .where(Poll.id == poll_id)
            .values(is_active=False, version_id=Poll.version_id + 1)
        )
        await session.execute(stmt)

    def build_poll_response_data(self, poll: Poll) -> Dict[str, Any]:
        options_list = [
            PollOptionSchema.model_validate(opt).model_dump()
            for opt in sorted(poll.poll_options, key=lambda opt: opt.order_index)
        ]
        total_votes = sum(opt["vote_count"] for opt in options_list)

        return {
            "uuid": poll.uuid,
            "title": poll.title,
            "description": poll.description,
            "is_public": poll.is_public,
            "allow_multiple_votes": poll.allow_multiple_votes,
            "expires_at": as_utc(poll.expires_at),
            "created_at": as_utc(poll.created_at),
            "version_id": poll.version_id,
            "creator_uuid": poll.creator.uuid,
            "creator_display_name": poll.creator.display_name,
            "is_expired": is_poll_expired(poll),
            "total_votes": total_votes,
            "options": options_list,
        }


poll_crud = PollCrud()
