import json
import tempfile
import unittest
from pathlib import Path

from silhouette import config as config_mod
from silhouette.config import AppConfig, load_config


class LoadConfigTests(unittest.TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		self.dir = Path(self._tmp.name)

	def tearDown(self) -> None:
		config_mod._CONFIG_PATH = None
		config_mod._CONFIG_CACHE = None
		self._tmp.cleanup()

	def _write(self, obj) -> Path:
		p = self.dir / "config.json"
		p.write_text(obj if isinstance(obj, str) else json.dumps(obj), encoding="utf-8")
		return p

	def test_missing_file_gives_defaults(self) -> None:
		cfg = load_config(self.dir / "nope.json")
		self.assertEqual(cfg, AppConfig())
		self.assertEqual(cfg.poller.interval_ms, 100)
		self.assertEqual(cfg.overlay.keypoint_name, "nose")
		self.assertEqual(cfg.overlay.min_score, 0.5)
		self.assertEqual((cfg.overlay.silhouette_width, cfg.overlay.silhouette_height), (300, 400))
		self.assertEqual(cfg.model.variant, "pose_landmarker_lite")

	def test_malformed_file_falls_back_to_defaults(self) -> None:
		p = self._write("{not json")
		with self.assertLogs("silhouette.config", level="WARNING"):
			self.assertEqual(load_config(p), AppConfig())
		p = self._write([1, 2, 3])
		with self.assertLogs("silhouette.config", level="WARNING"):
			self.assertEqual(load_config(p), AppConfig())

	def test_values_are_parsed(self) -> None:
		p = self._write(
			{
				"camera": {"backend": " HTTP ", "snapshot_url": "http://cam.local/snap.jpg", "timeout_seconds": "1.5"},
				"poller": {"interval_ms": "250", "single_flight": "false"},
				"overlay": {"indicator_size": 24, "silhouette_image": "assets/silhouette.png"},
				"server": {"port": 9000},
				"logging": {"level": "debug"},
			}
		)
		cfg = load_config(p)
		self.assertEqual(cfg.camera.backend, "http")
		self.assertEqual(cfg.camera.snapshot_url, "http://cam.local/snap.jpg")
		self.assertEqual(cfg.camera.timeout_seconds, 1.5)
		self.assertEqual(cfg.poller.interval_ms, 250)
		self.assertFalse(cfg.poller.single_flight)
		self.assertEqual(cfg.overlay.indicator_size, 24)
		self.assertEqual(cfg.overlay.silhouette_image, "assets/silhouette.png")
		self.assertEqual(cfg.server.port, 9000)
		self.assertEqual(cfg.logging.level, "DEBUG")
		# Untouched sections keep defaults.
		self.assertEqual(cfg.model, AppConfig().model)

	def test_out_of_range_values_are_clamped(self) -> None:
		p = self._write(
			{
				"camera": {"index": -3, "width": 0},
				"poller": {"interval_ms": 1},
				"overlay": {"min_score": 4, "indicator_size": -1},
				"preview": {"jpeg_quality": 200, "fps": 0},
				"model": {"min_detection_confidence": -0.2, "num_poses": 0},
			}
		)
		cfg = load_config(p)
		self.assertEqual(cfg.camera.index, 0)
		self.assertEqual(cfg.camera.width, 640)
		self.assertEqual(cfg.poller.interval_ms, 10)
		self.assertEqual(cfg.overlay.min_score, 1.0)
		self.assertEqual(cfg.overlay.indicator_size, 40)
		self.assertEqual(cfg.preview.jpeg_quality, 80)
		self.assertEqual(cfg.preview.fps, 15.0)
		self.assertEqual(cfg.model.min_detection_confidence, 0.0)
		self.assertEqual(cfg.model.num_poses, 1)

	def test_set_config_path_resets_cache(self) -> None:
		p = self._write({"poller": {"interval_ms": 50}})
		config_mod.set_config_path(p)
		self.assertEqual(config_mod.get_config().poller.interval_ms, 50)
		self.assertIs(config_mod.get_config(), config_mod.get_config())

		other = self.dir / "other.json"
		other.write_text(json.dumps({"poller": {"interval_ms": 75}}), encoding="utf-8")
		config_mod.set_config_path(other)
		self.assertEqual(config_mod.get_config().poller.interval_ms, 75)


if __name__ == "__main__":  # pragma: no cover
	unittest.main()
