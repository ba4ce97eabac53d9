from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from silhouette.config import ModelConfig
from silhouette.errors import DetectorInitError
from silhouette.pose.base import Detector

logger = logging.getLogger(__name__)


class SupportedModels(str, Enum):
	# Single supported variant; the detector always runs on the CPU delegate.
	MEDIAPIPE_POSE_LITE = "pose_landmarker_lite"


DetectorFactory = Callable[[SupportedModels], Awaitable[Detector]]


def parse_variant(value: str) -> SupportedModels:
	try:
		return SupportedModels(str(value).strip())
	except ValueError:
		supported = ", ".join(m.value for m in SupportedModels)
		raise ValueError(f"Unsupported model variant {value!r} (supported: {supported})") from None


async def create_detector(variant: SupportedModels, cfg: Optional[ModelConfig] = None) -> Detector:
	"""
	Build the MediaPipe detector for `variant`. The model asset download and
	the landmarker construction are blocking, so both run in the default executor.
	"""
	from silhouette.pose.mediapipe_detector import MediaPipePoseDetector, ensure_model_asset

	cfg = cfg or ModelConfig()
	variant = parse_variant(variant.value if isinstance(variant, SupportedModels) else variant)
	loop = asyncio.get_running_loop()

	def _build() -> Detector:
		path = Path(cfg.asset_path) if cfg.asset_path else ensure_model_asset(variant.value, cfg.cache_dir)
		return MediaPipePoseDetector(
			model_path=path,
			num_poses=cfg.num_poses,
			min_detection_confidence=cfg.min_detection_confidence,
		)

	return await loop.run_in_executor(None, _build)


class ModelLoader:
	"""
	One-shot asynchronous construction of the detector.

	The handle is kept for the life of the process; reset() drops it so the
	next load() builds a new one. Construction errors are fatal and surface as
	DetectorInitError.
	"""

	def __init__(
		self,
		variant: SupportedModels = SupportedModels.MEDIAPIPE_POSE_LITE,
		factory: Optional[DetectorFactory] = None,
	) -> None:
		self._variant = variant
		self._factory: DetectorFactory = factory or create_detector
		self._detector: Optional[Detector] = None
		self._pending: Optional[asyncio.Task] = None

	@property
	def variant(self) -> SupportedModels:
		return self._variant

	@property
	def ready(self) -> bool:
		return self._detector is not None

	@property
	def detector(self) -> Optional[Detector]:
		return self._detector

	async def load(self) -> Detector:
		if self._detector is not None:
			return self._detector
		if self._pending is None:
			self._pending = asyncio.ensure_future(self._build())
		pending = self._pending
		try:
			# shield: a cancelled caller must not abort a load another caller waits on
			detector = await asyncio.shield(pending)
		finally:
			if pending.done() and self._pending is pending:
				self._pending = None
		return detector

	async def _build(self) -> Detector:
		logger.info("[Model] loading %s", self._variant.value)
		try:
			detector = await self._factory(self._variant)
		except Exception as e:
			logger.error("[Model] failed to load %s: %r", self._variant.value, e)
			raise DetectorInitError(f"Could not create detector {self._variant.value!r}: {e}") from e
		self._detector = detector
		logger.info("[Model] %s ready (%s)", self._variant.value, detector.name())
		return detector

	def reset(self) -> None:
		detector, self._detector = self._detector, None
		if detector is None:
			return
		logger.info("[Model] detector reset")
		try:
			detector.close()
		except Exception as e:
			logger.warning("[Model] detector close failed: %s", e)
