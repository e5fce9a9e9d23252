from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Literal
from datetime import datetime

AssignmentStatus = Literal["draft", "published", "closed"]


class AssignmentCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    section: Optional[str] = None
    due_date: Optional[datetime] = None
    min_team_size: int = Field(default=2, ge=1)
    max_team_size: int = Field(default=4, ge=1)
    status: AssignmentStatus = "draft"

    @model_validator(mode="after")
    def check_team_size_bounds(self):
        if self.min_team_size > self.max_team_size:
            raise ValueError("min_team_size cannot exceed max_team_size")
        return self


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    section: Optional[str] = None
    due_date: Optional[datetime] = None
    min_team_size: Optional[int] = Field(default=None, ge=1)
    max_team_size: Optional[int] = Field(default=None, ge=1)
    status: Optional[AssignmentStatus] = None

    @field_validator("title", "min_team_size", "max_team_size", "status")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class AssignmentResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    section: Optional[str] = None
    created_by: str
    status: str
    min_team_size: int
    max_team_size: int
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
