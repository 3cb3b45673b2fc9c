"""Authorization checks shared by every domain."""

from __future__ import annotations

from typing import Iterable, Protocol

from student_system.domain.exceptions import ForbiddenError


class Principal(Protocol):
	id: str
	role: str

	@property
	def is_verified(self) -> bool: ...


def authorize(user: Principal, required_roles: Iterable[str]) -> bool:
	required = {str(role) for role in required_roles}
	if not required:
		return True
	return user.role in required


def require_verified(user: Principal) -> bool:
	return bool(user.is_verified)


def assert_roles(user: Principal, *roles: str) -> None:
	if not authorize(user, roles):
		raise ForbiddenError("insufficient_role", f"Access denied. Required role: {' or '.join(roles)}")


def assert_verified(user: Principal) -> None:
	if not require_verified(user):
		raise ForbiddenError("email_verification_required", "Email verification required to access this resource")


def is_admin(user: Principal) -> bool:
	return user.role == "admin"


def is_owner_or_admin(user: Principal, owner_id: object) -> bool:
	return str(owner_id) == str(user.id) or is_admin(user)
