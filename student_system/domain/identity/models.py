"""Domain models for the identity store."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

Role = Literal["student", "club", "admin"]
ROLES: tuple[str, ...] = ("student", "club", "admin")
SELF_REGISTER_ROLES: tuple[str, ...] = ("student", "club")


class User(BaseModel):
	"""A person with exactly one role."""

	id: UUID
	name: str
	email: str
	password_hash: Optional[str] = None
	role: Role = "student"
	is_email_verified: bool = False
	is_google_user: bool = False
	profile_image_url: Optional[str] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def is_verified(self) -> bool:
		# Google-origin accounts are always treated as verified.
		return self.is_email_verified or self.is_google_user
