import unittest

from silhouette.pose.keypoint_filter import KeypointFilter, filter_keypoints
from silhouette.pose.types import Keypoint, Pose


def _pose(*kps: Keypoint) -> Pose:
	return Pose(keypoints=tuple(kps))


class KeypointFilterTests(unittest.TestCase):
	def setUp(self) -> None:
		self.kps = [
			Keypoint("nose", 10, 10, 0.9),
			Keypoint("left_eye", 12, 8, 0.95),
			Keypoint("nose", 20, 20, 0.5),  # threshold is strict
			Keypoint("nose", 30, 30, 0.51),
			Keypoint("nose", 40, 40, 0.0),
			Keypoint("Nose", 50, 50, 0.99),
		]

	def test_keeps_only_confident_nose_in_order(self) -> None:
		out = filter_keypoints(_pose(*self.kps))
		self.assertEqual(out, [self.kps[0], self.kps[3]])

	def test_every_rejected_keypoint_fails_a_condition(self) -> None:
		out = filter_keypoints(_pose(*self.kps))
		for kp in self.kps:
			if kp.score <= 0.5 or kp.name != "nose":
				self.assertNotIn(kp, out)
			else:
				self.assertIn(kp, out)

	def test_empty_pose(self) -> None:
		self.assertEqual(filter_keypoints(Pose()), [])

	def test_idempotent(self) -> None:
		once = filter_keypoints(_pose(*self.kps))
		twice = filter_keypoints(_pose(*once))
		self.assertEqual(once, twice)

	def test_configured_filter(self) -> None:
		f = KeypointFilter(name="left_eye", min_score=0.9)
		self.assertEqual(f(_pose(*self.kps)), [self.kps[1]])
		self.assertEqual(KeypointFilter()(_pose(*self.kps)), filter_keypoints(_pose(*self.kps)))


if __name__ == "__main__":  # pragma: no cover
	unittest.main()
