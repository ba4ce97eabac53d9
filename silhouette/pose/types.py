from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


def _clamp01(v: float) -> float:
	return min(1.0, max(0.0, float(v)))


@dataclass(frozen=True)
class Keypoint:
	"""
	A single named 2D landmark in frame pixel coordinates.
	"""

	name: str
	x: float
	y: float
	score: float  # confidence [0..1]

	@classmethod
	def from_dict(cls, obj: Dict[str, Any]) -> "Keypoint":
		return cls(
			name=str(obj.get("name") or ""),
			x=float(obj.get("x") or 0.0),
			y=float(obj.get("y") or 0.0),
			score=_clamp01(obj.get("score") or 0.0),
		)

	def to_dict(self) -> Dict[str, Any]:
		return {"name": self.name, "x": self.x, "y": self.y, "score": self.score}


@dataclass(frozen=True)
class Pose:
	"""
	All keypoints for one detected person, in detector order.
	"""

	keypoints: Tuple[Keypoint, ...] = field(default_factory=tuple)
	score: Optional[float] = None

	def get(self, name: str) -> Optional[Keypoint]:
		for kp in self.keypoints:
			if kp.name == name:
				return kp
		return None

	@classmethod
	def from_dict(cls, obj: Dict[str, Any]) -> "Pose":
		kps = obj.get("keypoints") or []
		score = obj.get("score")
		return cls(
			keypoints=tuple(Keypoint.from_dict(k) for k in kps if isinstance(k, dict)),
			score=_clamp01(score) if score is not None else None,
		)

	def to_dict(self) -> Dict[str, Any]:
		out: Dict[str, Any] = {"keypoints": [k.to_dict() for k in self.keypoints]}
		if self.score is not None:
			out["score"] = self.score
		return out


# One entry per detected person; only the first one is rendered.
PoseSet = Tuple[Pose, ...]


def pose_set_from_obj(obj: Sequence[Dict[str, Any]]) -> PoseSet:
	"""
	Build a PoseSet from the detector wire shape:
	[{"keypoints": [{"name": "nose", "x": 50, "y": 60, "score": 0.9}, ...]}, ...]
	"""
	return tuple(Pose.from_dict(p) for p in (obj or []) if isinstance(p, dict))


def pose_set_to_obj(poses: PoseSet) -> List[Dict[str, Any]]:
	return [p.to_dict() for p in poses]
