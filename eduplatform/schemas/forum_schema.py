from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime
from typing import Optional

class PostResponse(BaseModel):
    id: int
    category_id: Optional[int]
    author_id: int
    title: str
    content: str
    is_pinned: bool
    is_answered: bool
    view_count: int
    reply_count: int
    created_at: datetime
    last_activity_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1)

class ReplyResponse(BaseModel):
    id: int
    post_id: int
    author_id: int
    content: str
    upvotes: int
    is_accepted_answer: bool
    created_at: datetime
    user_upvoted: bool = False

    model_config = ConfigDict(from_attributes=True)

class FlagCreate(BaseModel):
    post_id: Optional[int] = None
    reply_id: Optional[int] = None
    reason: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _one_target(self):
        if not self.post_id and not self.reply_id:
            raise ValueError("post_id or reply_id is required")
        return self

class FlagResponse(BaseModel):
    id: int
    post_id: Optional[int]
    reply_id: Optional[int]
    flagged_by: int
    reason: str
    is_resolved: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class UpvoteResponse(BaseModel):
    reply_id: int
    upvoted: bool
    upvotes: int
