from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from silhouette.config import AppConfig, get_config


class StreamStatus(str, Enum):
	ACTIVE = "active"
	INACTIVE = "inactive"


@dataclass(frozen=True)
class CameraStream:
	"""
	Result of one read: stream status plus the current frame (RGB H,W,3 uint8)
	when the stream is active.
	"""

	status: StreamStatus
	current: Any = None
	t_host: float = field(default_factory=time.time)

	@property
	def active(self) -> bool:
		return self.status == StreamStatus.ACTIVE and self.current is not None


class CameraBackend(ABC):
	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	async def request_permission(self) -> Dict[str, Any]:
		"""
		Ask for access to the camera. Returns {"status": "granted" | "denied", ...}.
		"""
		...

	@abstractmethod
	async def read_stream(self) -> CameraStream:
		"""
		Read the current frame. Returns an inactive stream if the camera is not
		running; raises FrameCaptureError if a running camera fails to deliver.
		"""
		...

	@abstractmethod
	def get_status(self) -> Dict[str, Any]: ...

	@abstractmethod
	def close(self) -> None: ...


def get_camera_backend(cfg: Optional[AppConfig] = None, *, backend_override: Optional[str] = None) -> CameraBackend:
	cfg = cfg or get_config()
	backend = (backend_override or cfg.camera.backend or "opencv").strip().lower()

	if backend in ("http", "snapshot"):
		from silhouette.camera_backends.http_snapshot_backend import HttpSnapshotCameraBackend

		return HttpSnapshotCameraBackend(cfg.camera.snapshot_url, timeout_seconds=cfg.camera.timeout_seconds)

	if backend not in ("opencv", "cv2", "webcam"):
		raise ValueError(f"Unknown camera backend {backend!r} (expected 'opencv' or 'http')")

	from silhouette.camera_backends.opencv_backend import OpenCVCameraBackend

	# NOTE: do not use `or 0`-style defaults on index; camera index 0 is valid.
	return OpenCVCameraBackend(
		index=int(cfg.camera.index),
		width=int(cfg.camera.width),
		height=int(cfg.camera.height),
	)
