from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

InvitationStatus = Literal["pending", "accepted", "declined", "cancelled"]


class InvitationCreate(BaseModel):
    invitee_id: str
    message: Optional[str] = Field(default=None, max_length=500)


class InvitationResponse(BaseModel):
    id: str
    team_id: str
    inviter_id: str
    invitee_id: str
    status: str
    message: Optional[str] = None
    created_at: datetime
    responded_at: Optional[datetime] = None
    team_name: Optional[str] = None
    assignment_id: Optional[str] = None

    class Config:
        from_attributes = True
