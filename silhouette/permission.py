from __future__ import annotations

import asyncio
import logging
from enum import Enum

from silhouette.camera_backend import CameraBackend

logger = logging.getLogger(__name__)


class PermissionState(str, Enum):
	UNKNOWN = "unknown"
	GRANTED = "granted"
	DENIED = "denied"


class PermissionGate:
	"""
	One-shot camera authorization.

	acquire() asks the camera once; the answer is final for this gate. A denial
	is not an error, the session just never starts polling. Re-mounting the
	session creates a new gate, which asks again.
	"""

	def __init__(self, camera: CameraBackend) -> None:
		self._camera = camera
		self._state = PermissionState.UNKNOWN
		self._requested = False

	@property
	def state(self) -> PermissionState:
		return self._state

	@property
	def granted(self) -> bool:
		return self._state == PermissionState.GRANTED

	async def acquire(self) -> PermissionState:
		if self._requested:
			return self._state
		self._requested = True
		try:
			resp = await self._camera.request_permission()
		except asyncio.CancelledError:
			# Never answered; the next acquire() asks again.
			self._requested = False
			raise
		except Exception as e:
			logger.warning("[Camera] permission request failed on %s: %r", self._camera.name(), e)
			self._state = PermissionState.DENIED
			return self._state

		status = str((resp or {}).get("status") or "").strip().lower()
		self._state = PermissionState.GRANTED if status == "granted" else PermissionState.DENIED
		logger.info("[Camera] permission %s (%s)", self._state.value, self._camera.name())
		return self._state
