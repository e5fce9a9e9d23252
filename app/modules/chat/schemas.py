from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ChatMessageCreate(BaseModel):
    content: str


class ChatMessageResponse(BaseModel):
    id: str
    team_id: str
    sender_id: str
    content: str
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    created_at: datetime
    sender_name: Optional[str] = None

    class Config:
        from_attributes = True


class ChatMessagePage(BaseModel):
    messages: List[ChatMessageResponse]
    has_more: bool
