from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


class TeamCreate(BaseModel):
    assignment_id: str
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        if value is None:
            raise ValueError("name cannot be null")
        return value


class TeamResponse(BaseModel):
    id: str
    assignment_id: str
    name: str
    description: Optional[str] = None
    leader_id: str
    member_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamMemberResponse(BaseModel):
    id: str
    team_id: str
    user_id: str
    role: str
    joined_at: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class TeamDetailResponse(TeamResponse):
    members: List[TeamMemberResponse] = []


class LeaderTransfer(BaseModel):
    user_id: str


class MemberRemovalResponse(BaseModel):
    team_id: str
    user_id: str
    team_deleted: bool = False
    new_leader_id: Optional[str] = None
