from __future__ import annotations

from abc import ABC, abstractmethod

from silhouette.pose.types import PoseSet


class Detector(ABC):
	"""
	Opaque pose-estimation handle.

	Implementations take an RGB image (H,W,3 uint8) and return a PoseSet with
	keypoints in pixel coordinates of that image.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	async def estimate(self, frame) -> PoseSet: ...

	@abstractmethod
	def close(self) -> None: ...
