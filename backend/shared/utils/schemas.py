"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, EmailStr, Field, model_validator


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["student", "committee", "admin"]
AccountStatusType = Literal["active", "inactive", "banned"]
CodePurposeType = Literal["register", "login", "reset_password"]

USERNAME_PATTERN = r"^[A-Za-z0-9]+$"
CODE_PATTERN = r"^[0-9]{6}$"


# =============================================================================
# Authentication Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """Self-service student registration."""

    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(min_length=6, max_length=50)
    real_name: str = Field(min_length=2, max_length=50)
    major: str = Field(min_length=1, max_length=100)
    class_name: str = Field(
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("class", "class_name"),
    )
    phone: str | None = Field(default=None, max_length=20)
    # Emailed registration code; mandatory when email verification is required
    code: str | None = Field(default=None, pattern=CODE_PATTERN)


class LoginRequest(BaseModel):
    """
    Login request body.

    Password login: username (or an email in the username field) + password.
    Email-code login: email + code, password optional.
    """

    username: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    password: str = Field(default="", max_length=50)
    code: str | None = Field(default=None, pattern=CODE_PATTERN)

    @model_validator(mode="after")
    def check_credentials_present(self) -> "LoginRequest":
        if self.code is not None:
            if self.email is None:
                raise ValueError("email is required for code login")
        elif not (self.username or self.email) or not self.password:
            raise ValueError("username and password are required")
        return self

    @property
    def identifier(self) -> str:
        """What the per-identifier rate limiter keys on."""
        return (self.username or str(self.email or "")).strip().lower()


class UserInfo(BaseModel):
    """Public user profile. Never includes the password hash."""

    id: int
    username: str
    email: str
    real_name: str
    role: Role
    status: AccountStatusType
    major: str | None = None
    class_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("class_name", "class"),
        serialization_alias="class",
    )
    phone: str | None = None
    avatar: str | None = None
    email_verified: bool = False
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Login response with JWT tokens. refresh_token is null for email-code logins."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int  # seconds
    user: UserInfo


class RefreshTokenRequest(BaseModel):
    """Refresh token request body."""

    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1, max_length=50)
    new_password: str = Field(min_length=6, max_length=50)


class SendCodeRequest(BaseModel):
    email: EmailStr
    purpose: CodePurposeType


class PasswordResetRequest(BaseModel):
    email: EmailStr
    code: str = Field(pattern=CODE_PATTERN)
    new_password: str = Field(min_length=6, max_length=50)


# =============================================================================
# User Management Schemas
# =============================================================================


class ProfileUpdate(BaseModel):
    """
    Fields a user may change on their own profile.

    Closed set: role, status, username, email and password are not writable here.
    Only fields present in the request body are applied.
    """

    real_name: str | None = Field(default=None, min_length=2, max_length=50)
    major: str | None = Field(default=None, min_length=1, max_length=100)
    class_name: str | None = Field(
        default=None,
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("class", "class_name"),
    )
    phone: str | None = Field(default=None, max_length=20)
    avatar: str | None = Field(default=None, max_length=500)

    model_config = {"extra": "forbid"}


class AdminUserUpdate(BaseModel):
    """Fields an administrator may change on any account."""

    role: Role | None = None
    status: AccountStatusType | None = None

    model_config = {"extra": "forbid"}


class LoginLogOutput(BaseModel):
    id: int
    user_id: int | None = None
    ip_address: str
    user_agent: str | None = None
    success: bool
    method: str
    reason: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""

    code: int
    message: str
