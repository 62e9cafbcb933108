from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=72)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    uuid: UUID
    email: str
    display_name: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class VotedPollInfo(BaseModel):
    poll_uuid: UUID
    option_uuids: List[UUID]


class UserMeResponse(UserResponse):
    created_poll_uuids: List[UUID] = Field(default_factory=list)
    voted_polls: List[VotedPollInfo] = Field(default_factory=list)
