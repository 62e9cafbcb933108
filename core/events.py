from sqlalchemy import event, update, case
from models import PollOption, Vote


@event.listens_for(Vote, 'after_insert')
def increment_option_vote_count(mapper, connection, target):
    """Increment the denormalized vote_count of the option a new Vote points at."""
    stmt = (
        update(PollOption)
        .where(PollOption.id == target.option_id)
        .values(vote_count=PollOption.vote_count + 1)
    )
    connection.execute(stmt)


@event.listens_for(Vote, 'after_delete')
def decrement_option_vote_count(mapper, connection, target):
    """Decrement the option vote_count for a removed Vote, never below zero."""
    stmt = (
        update(PollOption)
        .where(PollOption.id == target.option_id)
        .values(vote_count=case((PollOption.vote_count > 0, PollOption.vote_count - 1), else_=0))
    )
    connection.execute(stmt)
