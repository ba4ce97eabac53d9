from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Dict, Optional

from silhouette.camera_backend import CameraBackend, CameraStream, StreamStatus
from silhouette.errors import FrameCaptureError

logger = logging.getLogger(__name__)


class OpenCVCameraBackend(CameraBackend):
	"""
	Local webcam through cv2.VideoCapture.

	Notes:
	- "Permission" is the OS letting us open the device; a device that will not
	  open (missing, busy, or blocked by the OS) is reported as denied.
	- Frames are converted BGR -> RGB before leaving the backend.
	- VideoCapture calls block, so they run in the default executor.
	"""

	def __init__(self, index: int = 0, width: int = 640, height: int = 480) -> None:
		self._lock = threading.Lock()
		self._index = int(index)
		self._width = int(width)
		self._height = int(height)
		self._cap = None
		self._frames_read = 0
		self._t_last_frame: Optional[float] = None
		self._last_error: Optional[str] = None

	def name(self) -> str:
		return f"opencv:{self._index}"

	def _open_sync(self) -> bool:
		import cv2

		with self._lock:
			if self._cap is not None and self._cap.isOpened():
				return True
			cap = cv2.VideoCapture(self._index)
			if not cap.isOpened():
				cap.release()
				self._last_error = f"Could not open camera index {self._index}"
				return False
			# Try to set resolution (not guaranteed depending on camera)
			cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
			cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
			self._cap = cap
			self._last_error = None
			return True

	async def request_permission(self) -> Dict[str, Any]:
		loop = asyncio.get_running_loop()
		opened = await loop.run_in_executor(None, self._open_sync)
		if not opened:
			logger.info("[Camera] %s", self._last_error)
			return {"status": "denied", "reason": self._last_error}
		logger.info("[Camera] opened camera index %s", self._index)
		return {"status": "granted"}

	def _read_sync(self) -> CameraStream:
		import cv2

		with self._lock:
			cap = self._cap
			if cap is None or not cap.isOpened():
				return CameraStream(status=StreamStatus.INACTIVE)
			ok, frame = cap.read()
			if not ok or frame is None:
				self._last_error = "read() returned no frame"
				raise FrameCaptureError(f"Camera {self._index}: read() returned no frame")
			self._frames_read += 1
			self._t_last_frame = time.time()
		rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
		return CameraStream(status=StreamStatus.ACTIVE, current=rgb, t_host=self._t_last_frame)

	async def read_stream(self) -> CameraStream:
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, self._read_sync)

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {
				"backend": self.name(),
				"running": bool(self._cap is not None and self._cap.isOpened()),
				"frames_read": int(self._frames_read),
				"t_last_frame": self._t_last_frame,
				"size": [self._width, self._height],
				"error": self._last_error,
			}

	def close(self) -> None:
		with self._lock:
			cap, self._cap = self._cap, None
		if cap is None:
			return
		try:
			cap.release()
		except Exception as e:
			logger.debug("[Camera] release failed: %s", e)
