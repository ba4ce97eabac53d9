import unittest

import numpy as np
from PIL import Image

from fakes import nose_pose

from silhouette.overlay import (
	INDICATOR_COLOR,
	OverlayRenderer,
	SilhouetteSpec,
	draw_overlay,
	encode_jpeg,
	indicator_for,
	load_silhouette_image,
)
from silhouette.pose.keypoint_filter import KeypointFilter
from silhouette.pose.types import Keypoint, Pose


class OverlayRendererTests(unittest.TestCase):
	def test_indicator_is_centered_on_keypoint(self) -> None:
		overlay = OverlayRenderer().render(nose_pose(100, 150, 0.9))
		self.assertEqual(len(overlay.indicators), 1)
		ind = overlay.indicators[0]
		self.assertEqual((ind.left, ind.top, ind.width, ind.height), (80.0, 130.0, 40.0, 40.0))
		self.assertEqual(ind.center, (100.0, 150.0))

	def test_low_confidence_nose_is_hidden(self) -> None:
		overlay = OverlayRenderer().render(nose_pose(100, 150, 0.5))
		self.assertEqual(overlay.indicators, ())

	def test_only_first_pose_is_rendered(self) -> None:
		first = Pose(keypoints=(Keypoint("nose", 10, 10, 0.9),))
		second = Pose(keypoints=(Keypoint("nose", 200, 200, 0.99),))
		overlay = OverlayRenderer().render((first, second))
		self.assertEqual([i.center for i in overlay.indicators], [(10.0, 10.0)])

	def test_empty_pose_set_still_shows_silhouette(self) -> None:
		overlay = OverlayRenderer().render(())
		self.assertEqual(overlay.indicators, ())
		self.assertEqual(overlay.to_dict(), {"silhouette": {"width": 300, "height": 400}, "indicators": []})

	def test_configured_renderer(self) -> None:
		renderer = OverlayRenderer(
			KeypointFilter(name="left_wrist", min_score=0.2),
			SilhouetteSpec(width=150, height=200),
			indicator_size=10,
		)
		pose = Pose(keypoints=(Keypoint("nose", 1, 1, 0.9), Keypoint("left_wrist", 30, 40, 0.3)))
		d = renderer.render((pose,)).to_dict()
		self.assertEqual(d["silhouette"], {"width": 150, "height": 200})
		self.assertEqual(d["indicators"], [{"name": "left_wrist", "left": 25.0, "top": 35.0, "width": 10.0, "height": 10.0}])

	def test_indicator_may_extend_past_frame_edge(self) -> None:
		ind = indicator_for(Keypoint("nose", 5, 5, 1.0))
		self.assertEqual((ind.left, ind.top), (-15.0, -15.0))


class DrawOverlayTests(unittest.TestCase):
	def test_draws_ring_without_touching_frame(self) -> None:
		frame = np.zeros((240, 320, 3), dtype=np.uint8)
		overlay = OverlayRenderer().render(nose_pose(100, 150, 0.9))
		im = draw_overlay(frame, overlay)

		self.assertEqual(im.size, (320, 240))
		self.assertEqual(int(frame.sum()), 0)
		# Left edge of the ring, vertically centered.
		self.assertIn(INDICATOR_COLOR, (im.getpixel((80, 150)), im.getpixel((81, 150))))
		# Center stays untouched.
		self.assertEqual(im.getpixel((100, 150)), (0, 0, 0))

	def test_silhouette_image_is_centered(self) -> None:
		frame = np.zeros((100, 100, 3), dtype=np.uint8)
		sil = Image.new("RGBA", (20, 20), (255, 255, 255, 255))
		im = draw_overlay(frame, OverlayRenderer().render(()), silhouette_image=sil)
		self.assertEqual(im.getpixel((50, 50)), (255, 255, 255))
		self.assertEqual(im.getpixel((5, 5)), (0, 0, 0))

	def test_encode_jpeg(self) -> None:
		im = draw_overlay(np.zeros((48, 64, 3), dtype=np.uint8), OverlayRenderer().render(()))
		data = encode_jpeg(im, quality=70)
		self.assertTrue(data.startswith(b"\xff\xd8"))

	def test_missing_silhouette_image_is_logged(self) -> None:
		self.assertIsNone(load_silhouette_image(SilhouetteSpec()))
		with self.assertLogs("silhouette.overlay", level="WARNING"):
			self.assertIsNone(load_silhouette_image(SilhouetteSpec(image_path="/nonexistent/silhouette.png")))


if __name__ == "__main__":  # pragma: no cover
	unittest.main()
