from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, Literal


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user_id: str
    email: str
    role: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: Literal["student", "teacher"] = "student"
    student_id: Optional[str] = None
    section: Optional[str] = None

    @model_validator(mode="after")
    def require_student_fields(self):
        if self.role == "student":
            if not self.student_id:
                raise ValueError("Student ID is required")
            if not self.section:
                raise ValueError("Section/Class is required")
        return self

    def to_user_metadata(self) -> dict:
        """Metadata keys read by the profile-creation trigger."""
        metadata = {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
        }
        if self.role == "student":
            metadata["studentId"] = self.student_id
            metadata["section"] = self.section
        return metadata


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(min_length=6)


class MessageResponse(BaseModel):
    message: str
