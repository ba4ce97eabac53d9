from __future__ import annotations

import asyncio
import logging
import time
import urllib.error
import urllib.request
from io import BytesIO
from typing import Any, Dict, Optional

import numpy as np
from PIL import Image

from silhouette.camera_backend import CameraBackend, CameraStream, StreamStatus
from silhouette.errors import FrameCaptureError

logger = logging.getLogger(__name__)


class HttpSnapshotCameraBackend(CameraBackend):
	"""
	Camera reached over HTTP: every read GETs one JPEG snapshot (e.g. a phone
	camera app or another collector's /snapshot.jpg) and decodes it with Pillow.

	Permission is granted once the URL answers with an image; 401/403 or an
	unreachable host is a denial.
	"""

	def __init__(self, snapshot_url: str, timeout_seconds: float = 2.0) -> None:
		self._url = (snapshot_url or "").strip()
		self._timeout = float(timeout_seconds)
		self._running = False
		self._frames_read = 0
		self._t_last_frame: Optional[float] = None
		self._last_error: Optional[str] = None

	def name(self) -> str:
		return "http"

	def _fetch(self) -> bytes:
		with urllib.request.urlopen(self._url, timeout=self._timeout) as resp:
			return resp.read()

	async def request_permission(self) -> Dict[str, Any]:
		if not self._url:
			self._last_error = "camera.snapshot_url is not set"
			return {"status": "denied", "reason": self._last_error}
		loop = asyncio.get_running_loop()
		try:
			await loop.run_in_executor(None, self._fetch)
		except urllib.error.HTTPError as e:
			self._last_error = f"HTTP {e.code}"
			status = "denied" if e.code in (401, 403) else "unavailable"
			logger.info("[Camera] %s answered %s", self._url, e.code)
			return {"status": status, "reason": self._last_error}
		except (urllib.error.URLError, OSError) as e:
			self._last_error = repr(e)
			logger.info("[Camera] %s unreachable: %s", self._url, e)
			return {"status": "unavailable", "reason": self._last_error}
		self._running = True
		self._last_error = None
		return {"status": "granted"}

	def _read_sync(self) -> CameraStream:
		try:
			data = self._fetch()
			with Image.open(BytesIO(data)) as im:
				rgb = np.asarray(im.convert("RGB"))
		except (urllib.error.URLError, OSError, ValueError) as e:
			self._last_error = repr(e)
			raise FrameCaptureError(f"Snapshot fetch failed: {e}") from e
		self._frames_read += 1
		self._t_last_frame = time.time()
		return CameraStream(status=StreamStatus.ACTIVE, current=rgb, t_host=self._t_last_frame)

	async def read_stream(self) -> CameraStream:
		if not self._running:
			return CameraStream(status=StreamStatus.INACTIVE)
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, self._read_sync)

	def get_status(self) -> Dict[str, Any]:
		return {
			"backend": self.name(),
			"url": self._url,
			"running": bool(self._running),
			"frames_read": int(self._frames_read),
			"t_last_frame": self._t_last_frame,
			"error": self._last_error,
		}

	def close(self) -> None:
		self._running = False
