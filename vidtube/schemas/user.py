# vidtube/schemas/user.py
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, model_validator


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.email or self.username):
            raise ValueError("username or email is required")
        return self


class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    oldPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=8)


class AccountUpdate(BaseModel):
    fullName: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
