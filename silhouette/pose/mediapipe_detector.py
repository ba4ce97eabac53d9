from __future__ import annotations

import asyncio
import logging
import threading
import urllib.request
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from silhouette.pose.base import Detector
from silhouette.pose.types import Keypoint, Pose, PoseSet

logger = logging.getLogger(__name__)


COCO17_NAMES = [
	"nose",
	"left_eye",
	"right_eye",
	"left_ear",
	"right_ear",
	"left_shoulder",
	"right_shoulder",
	"left_elbow",
	"right_elbow",
	"left_wrist",
	"right_wrist",
	"left_hip",
	"right_hip",
	"left_knee",
	"right_knee",
	"left_ankle",
	"right_ankle",
]

# COCO-17 name -> MediaPipe PoseLandmarker index (33-point topology).
MEDIAPIPE_INDEX: Dict[str, int] = {
	"nose": 0,
	"left_eye": 2,
	"right_eye": 5,
	"left_ear": 7,
	"right_ear": 8,
	"left_shoulder": 11,
	"right_shoulder": 12,
	"left_elbow": 13,
	"right_elbow": 14,
	"left_wrist": 15,
	"right_wrist": 16,
	"left_hip": 23,
	"right_hip": 24,
	"left_knee": 25,
	"right_knee": 26,
	"left_ankle": 27,
	"right_ankle": 28,
}

MODEL_ASSETS: Dict[str, Dict[str, str]] = {
	"pose_landmarker_lite": {
		"url": "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task",
		"file": "pose_landmarker_lite.task",
	},
}


def ensure_model_asset(variant: str, cache_dir: str | Path) -> Path:
	"""
	Return the local .task path for `variant`, downloading it on first use.
	Blocking; call from an executor.
	"""
	asset = MODEL_ASSETS.get(variant)
	if asset is None:
		raise ValueError(f"No model asset registered for variant {variant!r}")
	path = Path(cache_dir) / asset["file"]
	if path.exists():
		return path
	path.parent.mkdir(parents=True, exist_ok=True)
	logger.info("[Model] downloading %s to %s", path.name, path)
	tmp = path.with_suffix(path.suffix + ".part")
	urllib.request.urlretrieve(asset["url"], tmp)
	tmp.replace(path)
	return path


def keypoints_from_landmarks(landmarks: Sequence[Any], width: int, height: int) -> List[Keypoint]:
	"""
	Map one person's MediaPipe landmarks (normalized x/y, visibility) to
	COCO-17 keypoints in pixel space. Missing indices are skipped.
	"""
	out: List[Keypoint] = []
	for name in COCO17_NAMES:
		idx = MEDIAPIPE_INDEX[name]
		if idx >= len(landmarks):
			continue
		p = landmarks[idx]
		vis = getattr(p, "visibility", None)
		out.append(
			Keypoint(
				name=name,
				x=float(p.x) * float(width),
				y=float(p.y) * float(height),
				score=min(1.0, max(0.0, float(vis or 0.0))),
			)
		)
	return out


class MediaPipePoseDetector(Detector):
	"""
	MediaPipe PoseLandmarker on the CPU delegate, emitting COCO-17 keypoints.

	Notes:
	- MediaPipe uses normalized coordinates; we convert to pixel space.
	- `visibility` is used as score.
	- Inference is blocking native code, so estimate() runs it in the default executor.
	"""

	def __init__(
		self,
		model_path: str | Path,
		num_poses: int = 1,
		min_detection_confidence: float = 0.5,
	) -> None:
		try:
			import mediapipe as mp  # type: ignore
			from mediapipe.tasks import python as mp_python  # type: ignore
			from mediapipe.tasks.python import vision  # type: ignore
		except ImportError as e:
			raise RuntimeError("MediaPipe is not installed. Install pose deps with: pip install -e '.[pose]'") from e

		self._mp = mp
		# Held across detect() and close(); close() waits for a running inference.
		self._lock = threading.Lock()
		base_options = mp_python.BaseOptions(
			model_asset_path=str(model_path),
			delegate=mp_python.BaseOptions.Delegate.CPU,
		)
		options = vision.PoseLandmarkerOptions(
			base_options=base_options,
			running_mode=vision.RunningMode.IMAGE,
			num_poses=int(num_poses),
			min_pose_detection_confidence=float(min_detection_confidence),
		)
		self._landmarker = vision.PoseLandmarker.create_from_options(options)

	def name(self) -> str:
		return "mediapipe_pose"

	def _estimate_sync(self, frame) -> PoseSet:
		rgb = np.ascontiguousarray(frame, dtype=np.uint8)
		h, w = int(rgb.shape[0]), int(rgb.shape[1])
		image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
		with self._lock:
			if self._landmarker is None:
				raise RuntimeError("MediaPipe detector is closed")
			res = self._landmarker.detect(image)
		if not res or not getattr(res, "pose_landmarks", None):
			return ()
		return tuple(Pose(keypoints=tuple(keypoints_from_landmarks(lm, w, h))) for lm in res.pose_landmarks)

	async def estimate(self, frame) -> PoseSet:
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, self._estimate_sync, frame)

	def close(self) -> None:
		lock = getattr(self, "_lock", None)
		if lock is None:
			return
		with lock:
			landmarker: Optional[Any] = self._landmarker
			self._landmarker = None
			if landmarker is None:
				return
			try:
				landmarker.close()
			except Exception as e:
				logger.debug("[Model] landmarker close failed: %s", e)
