from __future__ import annotations

import pytest
from google.auth import exceptions as google_exceptions

from student_system.domain.exceptions import BadRequestError, InvalidGoogleTokenError
from student_system.infra import google
from student_system.infra.google import GoogleIdTokenVerifier


@pytest.mark.asyncio
async def test_verifier_checks_audience(monkeypatch):
	seen: list[tuple[str, str]] = []

	def fake_verify(token, request, audience):
		seen.append((token, audience))
		return {"email": "grace@example.com", "email_verified": True}

	monkeypatch.setattr(google.google_id_token, "verify_oauth2_token", fake_verify)

	claims = await GoogleIdTokenVerifier("client-123.apps.googleusercontent.com").verify("id-token")

	assert claims["email"] == "grace@example.com"
	assert seen == [("id-token", "client-123.apps.googleusercontent.com")]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ValueError("Token expired"), google_exceptions.TransportError("no route")])
async def test_verifier_rejects_bad_tokens(monkeypatch, error):
	def fake_verify(token, request, audience):
		raise error

	monkeypatch.setattr(google.google_id_token, "verify_oauth2_token", fake_verify)

	with pytest.raises(InvalidGoogleTokenError):
		await GoogleIdTokenVerifier("client-123").verify("id-token")


@pytest.mark.asyncio
async def test_verifier_refuses_without_client_id(monkeypatch):
	def fake_verify(token, request, audience):
		raise AssertionError("must not be called")

	monkeypatch.setattr(google.google_id_token, "verify_oauth2_token", fake_verify)

	with pytest.raises(BadRequestError) as excinfo:
		await GoogleIdTokenVerifier(None).verify("id-token")
	assert excinfo.value.detail == "google_login_not_configured"
