from typing import List
from uuid import UUID
from pydantic import BaseModel, Field


class VoteRequestSchema(BaseModel):
    poll_id: UUID = Field(..., description="UUID of the poll being voted on")
    option_ids: List[UUID] = Field(..., min_length=1, description="UUIDs of the selected options")


class UpdatedOptionSchema(BaseModel):
    id: UUID
    poll_id: UUID
    vote_count: int


class VoteResponseSchema(BaseModel):
    """Response schema for a recorded vote with the poll's fresh counts."""
    success: bool = True
    updated_options: List[UpdatedOptionSchema]
