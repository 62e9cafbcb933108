from datetime import datetime

from sqlalchemy import Integer, ForeignKey, String, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.base import Base


class PollOption(Base):
    __tablename__ = 'poll_options'
    __table_args__ = (
        UniqueConstraint('poll_id', 'order_index', name='uq_poll_options_poll_order'),
        CheckConstraint('vote_count >= 0', name='ck_poll_options_vote_count_non_negative'),
    )

    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll.id", ondelete="CASCADE"), nullable=False, index=True)
    text: Mapped[str] = mapped_column(String(200), nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    poll: Mapped["Poll"] = relationship(back_populates="poll_options")
