import tempfile
import threading
import unittest
from pathlib import Path
from types import SimpleNamespace

import numpy as np

from silhouette.pose.mediapipe_detector import (
	COCO17_NAMES,
	MediaPipePoseDetector,
	ensure_model_asset,
	keypoints_from_landmarks,
)
from silhouette.pose.types import Keypoint, Pose, pose_set_from_obj, pose_set_to_obj


def _landmarks(n: int = 33):
	return [SimpleNamespace(x=0.0, y=0.0, visibility=0.1) for _ in range(n)]


class LandmarkMappingTests(unittest.TestCase):
	def test_normalized_landmarks_become_pixels(self) -> None:
		lms = _landmarks()
		lms[0] = SimpleNamespace(x=0.5, y=0.25, visibility=0.93)
		kps = keypoints_from_landmarks(lms, 640, 480)

		self.assertEqual([k.name for k in kps], COCO17_NAMES)
		nose = kps[0]
		self.assertEqual((nose.name, nose.x, nose.y), ("nose", 320.0, 120.0))
		self.assertAlmostEqual(nose.score, 0.93)

	def test_visibility_is_clamped_and_optional(self) -> None:
		lms = _landmarks()
		lms[0] = SimpleNamespace(x=0.1, y=0.1, visibility=1.7)
		lms[2] = SimpleNamespace(x=0.1, y=0.1)
		kps = {k.name: k for k in keypoints_from_landmarks(lms, 100, 100)}
		self.assertEqual(kps["nose"].score, 1.0)
		self.assertEqual(kps["left_eye"].score, 0.0)

	def test_short_landmark_list_skips_missing(self) -> None:
		kps = keypoints_from_landmarks(_landmarks(12), 100, 100)
		self.assertEqual([k.name for k in kps], COCO17_NAMES[:6])

	def test_cached_asset_is_not_downloaded(self) -> None:
		with tempfile.TemporaryDirectory() as d:
			p = Path(d) / "pose_landmarker_lite.task"
			p.write_bytes(b"model")
			self.assertEqual(ensure_model_asset("pose_landmarker_lite", d), p)
			with self.assertRaises(ValueError):
				ensure_model_asset("movenet", d)



class _BlockingLandmarker:
	def __init__(self) -> None:
		self.started = threading.Event()
		self.release = threading.Event()
		self.closed = False

	def detect(self, image):
		self.started.set()
		self.release.wait(5.0)
		return SimpleNamespace(pose_landmarks=[])

	def close(self) -> None:
		self.closed = True


def _detector_with(landmarker) -> MediaPipePoseDetector:
	# Bypass __init__ so no MediaPipe install is needed.
	det = MediaPipePoseDetector.__new__(MediaPipePoseDetector)
	det._mp = SimpleNamespace(Image=lambda image_format, data: data, ImageFormat=SimpleNamespace(SRGB="srgb"))
	det._lock = threading.Lock()
	det._landmarker = landmarker
	return det


class DetectorCloseTests(unittest.TestCase):
	def test_close_waits_for_running_inference(self) -> None:
		landmarker = _BlockingLandmarker()
		det = _detector_with(landmarker)
		frame = np.zeros((4, 4, 3), dtype=np.uint8)

		infer = threading.Thread(target=det._estimate_sync, args=(frame,))
		infer.start()
		self.assertTrue(landmarker.started.wait(5.0))
		closer = threading.Thread(target=det.close)
		closer.start()
		closer.join(0.05)
		self.assertTrue(closer.is_alive())
		self.assertFalse(landmarker.closed)

		landmarker.release.set()
		infer.join(5.0)
		closer.join(5.0)
		self.assertTrue(landmarker.closed)

	def test_estimate_after_close_raises(self) -> None:
		landmarker = _BlockingLandmarker()
		landmarker.release.set()
		det = _detector_with(landmarker)
		det.close()
		det.close()
		with self.assertRaises(RuntimeError):
			det._estimate_sync(np.zeros((4, 4, 3), dtype=np.uint8))

class PoseTypesTests(unittest.TestCase):
	def test_from_obj(self) -> None:
		poses = pose_set_from_obj(
			[
				{"keypoints": [{"name": "nose", "x": 50, "y": 60, "score": 0.9}, "junk"]},
				"junk",
				{"keypoints": [{"name": "nose", "x": 1, "y": 2, "score": 3}], "score": 0.4},
			]
		)
		self.assertEqual(len(poses), 2)
		self.assertEqual(poses[0].keypoints, (Keypoint("nose", 50.0, 60.0, 0.9),))
		self.assertEqual(poses[1].get("nose").score, 1.0)
		self.assertEqual(poses[1].score, 0.4)
		self.assertIsNone(poses[0].get("left_eye"))

	def test_to_obj_omits_missing_score(self) -> None:
		poses = (Pose(keypoints=(Keypoint("nose", 1.0, 2.0, 0.5),)),)
		self.assertEqual(pose_set_to_obj(poses), [{"keypoints": [{"name": "nose", "x": 1.0, "y": 2.0, "score": 0.5}]}])
		self.assertEqual(pose_set_from_obj(pose_set_to_obj(poses)), poses)
		self.assertEqual(pose_set_from_obj(None), ())


if __name__ == "__main__":  # pragma: no cover
	unittest.main()
