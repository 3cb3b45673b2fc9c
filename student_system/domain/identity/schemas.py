"""Pydantic schemas for identity and user administration endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from student_system.api.pagination import Pagination


class RegisterRequest(BaseModel):
	name: str = Field(..., min_length=2, max_length=50)
	email: EmailStr
	password: str = Field(..., min_length=6, max_length=128)
	role: Literal["student", "club"] = "student"

	@field_validator("name")
	@classmethod
	def _strip_name(cls, value: str) -> str:
		value = value.strip()
		if len(value) < 2:
			raise ValueError("Name must be between 2 and 50 characters")
		return value


class LoginRequest(BaseModel):
	email: EmailStr
	password: str = Field(..., min_length=1)


class ResendVerificationRequest(BaseModel):
	email: EmailStr


class GoogleLoginRequest(BaseModel):
	id_token: str = Field(..., min_length=1)
	email: EmailStr
	name: str = Field(..., min_length=1, max_length=50)
	role: Literal["student", "club"] = "student"

	@field_validator("name")
	@classmethod
	def _strip_name(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("Name is required")
		return value


class ProfileImageRequest(BaseModel):
	image_url: str = Field(..., min_length=1, max_length=2048)


class UpdateNameRequest(BaseModel):
	name: str = Field(..., min_length=2, max_length=50)


class UserResponse(BaseModel):
	id: UUID
	name: str
	email: str
	role: str
	is_email_verified: bool
	is_google_user: bool
	profile_image_url: Optional[str] = None
	created_at: datetime
	updated_at: datetime


class AuthResponse(BaseModel):
	access_token: str
	token_type: str = "bearer"
	user: UserResponse


class GoogleAuthResponse(AuthResponse):
	message: str
	created: bool = False


class ProfileImageResponse(BaseModel):
	message: str
	user: UserResponse
	warnings: List[str] = Field(default_factory=list)


class RegisterResponse(BaseModel):
	message: str
	user: UserResponse
	requires_email_verification: bool = True


class VerificationStatusResponse(BaseModel):
	is_email_verified: bool
	is_google_user: bool
	email: str


class AdminUserCreateRequest(RegisterRequest):
	role: Literal["student", "club", "admin"] = "student"  # type: ignore[assignment]
	is_email_verified: bool = True


class AdminUserUpdateRequest(BaseModel):
	name: Optional[str] = Field(default=None, min_length=2, max_length=50)
	role: Optional[Literal["student", "club", "admin"]] = None


class UserListResponse(BaseModel):
	users: List[UserResponse]
	pagination: Pagination


class UserStatsResponse(BaseModel):
	total: int
	verified: int
	students: int
	clubs: int
	admins: int


class MessageResponse(BaseModel):
	message: str
