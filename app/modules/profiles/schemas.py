from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

Role = Literal["admin", "teacher", "student"]


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    student_id: Optional[str] = None
    section: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class ProfileRoleUpdate(BaseModel):
    role: Role


class ProfileResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    student_id: Optional[str] = None
    section: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkUserRow(BaseModel):
    email: str
    password: Optional[str] = None
    role: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    student_id: Optional[str] = None
    section: Optional[str] = None


class BulkUserResult(BaseModel):
    email: str
    success: bool
    skipped: bool = False
    user_id: Optional[str] = None
    profile_created: Optional[bool] = None
    error: Optional[str] = None


class BulkImportResponse(BaseModel):
    total: int
    created: int
    skipped: int
    failed: int
    results: List[BulkUserResult]
