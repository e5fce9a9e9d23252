from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime


class PhaseCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    phase_order: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.due_date and self.start_date > self.due_date:
            raise ValueError("start_date must be before due_date")
        return self


class PhaseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    phase_order: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "phase_order")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class PhaseResponse(BaseModel):
    id: str
    assignment_id: str
    title: str
    description: Optional[str] = None
    phase_order: int
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
