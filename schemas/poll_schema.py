from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


class PollOptionSchema(BaseModel):
    uuid: UUID
    text: str
    vote_count: int
    order_index: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CreatePollRequestSchema(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    is_public: bool = True
    allow_multiple_votes: bool = False
    expires_at: Optional[datetime] = None
    options: List[str] = Field(..., min_length=2, max_length=10)

    @field_validator("expires_at", mode="before")
    @classmethod
    def empty_expiry_is_none(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @field_validator("expires_at")
    @classmethod
    def expiry_must_be_in_future(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        v = v.astimezone(timezone.utc)
        if v <= datetime.now(timezone.utc):
            raise ValueError("Expiry date must be in the future")
        return v

    @field_validator("options")
    @classmethod
    def validate_option_text(cls, v: List[str]) -> List[str]:
        for text in v:
            if len(text) < 1:
                raise ValueError("Option cannot be empty")
            if len(text) > 200:
                raise ValueError("Option must be less than 200 characters")
        return v


class UpdatePollRequestSchema(CreatePollRequestSchema):
    version_id: Optional[int] = None


class PollResponseSchema(BaseModel):
    uuid: UUID
    title: str
    description: Optional[str]
    is_public: bool
    allow_multiple_votes: bool
    expires_at: Optional[datetime]
    created_at: datetime
    version_id: int
    creator_uuid: UUID
    creator_display_name: Optional[str] = None
    is_expired: bool
    total_votes: int
    options: List[PollOptionSchema]


class PollDeletedSchema(BaseModel):
    message: str
    uuid: UUID


class OptionResultSchema(BaseModel):
    uuid: UUID
    text: str
    vote_count: int
    percentage: float


class PollResultsSchema(BaseModel):
    poll_uuid: UUID
    total_votes: int
    results: List[OptionResultSchema]
