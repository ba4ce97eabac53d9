from __future__ import annotations

from dataclasses import dataclass
from typing import List

from silhouette.pose.types import Keypoint, Pose


def filter_keypoints(pose: Pose, name: str = "nose", min_score: float = 0.5) -> List[Keypoint]:
	"""
	Keypoints of `pose` named `name` with score strictly above `min_score`,
	in input order.
	"""
	return [kp for kp in pose.keypoints if kp.score > min_score and kp.name == name]


@dataclass(frozen=True)
class KeypointFilter:
	name: str = "nose"
	min_score: float = 0.5

	def __call__(self, pose: Pose) -> List[Keypoint]:
		return filter_keypoints(pose, name=self.name, min_score=self.min_score)
