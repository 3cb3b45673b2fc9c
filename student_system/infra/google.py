"""Google ID token verification for "Sign in with Google"."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from student_system.domain.exceptions import BadRequestError, InvalidGoogleTokenError
from student_system.settings import settings

logger = logging.getLogger(__name__)


class GoogleTokenVerifier(Protocol):
	async def verify(self, token: str) -> dict[str, Any]:
		"""Return the token claims. Raises InvalidGoogleTokenError."""
		...


class GoogleIdTokenVerifier:
	"""Checks signature, expiry, issuer and audience with google-auth.

	Google's signing certificates are fetched over HTTP by the library, so the
	check runs in a worker thread.
	"""

	def __init__(self, client_id: Optional[str]) -> None:
		self.client_id = client_id

	def _verify_sync(self, token: str) -> dict[str, Any]:
		return google_id_token.verify_oauth2_token(token, google_requests.Request(), self.client_id)

	async def verify(self, token: str) -> dict[str, Any]:
		if not self.client_id:
			# An empty audience turns off the audience check in google-auth.
			raise BadRequestError("google_login_not_configured", "Google sign-in is not available")
		try:
			claims = await asyncio.to_thread(self._verify_sync, token)
		except (ValueError, google_exceptions.GoogleAuthError) as exc:
			logger.info("google_token_rejected", extra={"error": str(exc)})
			raise InvalidGoogleTokenError() from exc
		return dict(claims)


def default_google_verifier() -> GoogleTokenVerifier:
	return GoogleIdTokenVerifier(settings.google_client_id)
