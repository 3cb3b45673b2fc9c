"""Image resource release against the hosted image store."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Callable, Optional, Protocol

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from student_system.domain.exceptions import UpstreamFailure
from student_system.settings import settings

logger = logging.getLogger(__name__)

# https://res.cloudinary.com/<cloud>/image/upload/v1234567890/<folder>/<public_id>.<ext>
_PUBLIC_ID_RE = re.compile(r"/v\d+/(.+)\.([^./]+)$")
_OK_RESULTS = {"ok", "not found"}

Destroy = Callable[..., dict[str, Any]]


def extract_public_id(url: str | None) -> Optional[str]:
	"""Return the store public id (folder path included) encoded in ``url``."""
	if not url:
		return None
	match = _PUBLIC_ID_RE.search(url)
	return match.group(1) if match else None


class ImageStore(Protocol):
	async def release(self, image_url: str) -> None:
		"""Delete the stored image behind ``image_url``. Raises UpstreamFailure."""
		...


class CloudinaryImageStore:
	"""Delete images with the Cloudinary SDK's ``uploader.destroy``.

	Credentials travel with each call instead of the SDK's global config. The
	SDK is blocking, so calls run in a worker thread.
	"""

	def __init__(
		self,
		*,
		cloud_name: str,
		api_key: str,
		api_secret: str,
		timeout: float = 5.0,
		destroy: Destroy | None = None,
	) -> None:
		self.cloud_name = cloud_name
		self._options = {
			"cloud_name": cloud_name,
			"api_key": api_key,
			"api_secret": api_secret,
			"timeout": timeout,
			"invalidate": True,
		}
		self._destroy = destroy or cloudinary.uploader.destroy

	async def release(self, image_url: str) -> None:
		public_id = extract_public_id(image_url)
		if not public_id:
			logger.info("image_release_skipped", extra={"trigger": "no_public_id"})
			return
		try:
			response = await asyncio.to_thread(self._destroy, public_id, **self._options)
		except (CloudinaryError, OSError) as exc:
			raise UpstreamFailure("image_store", "release", str(exc)) from exc
		result = (response or {}).get("result")
		if result not in _OK_RESULTS:
			raise UpstreamFailure("image_store", "release", f"unexpected result: {result}")
		logger.info("image_released", extra={"public_id": public_id, "result": result})


class NullImageStore:
	"""Used when no image store is configured."""

	async def release(self, image_url: str) -> None:
		logger.info("image_release_skipped", extra={"trigger": "store_not_configured"})


def default_image_store() -> ImageStore:
	if settings.image_store_configured():
		return CloudinaryImageStore(
			cloud_name=settings.cloudinary_cloud_name or "",
			api_key=settings.cloudinary_api_key or "",
			api_secret=settings.cloudinary_api_secret or "",
			timeout=settings.image_store_timeout_seconds,
		)
	return NullImageStore()
