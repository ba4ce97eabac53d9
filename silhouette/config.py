from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraConfig:
	backend: str = "opencv"  # opencv / http
	index: int = 0
	width: int = 640
	height: int = 480
	# Used by the http backend only; must return a single JPEG per GET.
	snapshot_url: str = ""
	timeout_seconds: float = 2.0


@dataclass(frozen=True)
class ModelConfig:
	variant: str = "pose_landmarker_lite"
	# Downloaded model assets are cached here (relative to the working directory).
	cache_dir: str = "models"
	# If set, skip the download and load this .task file directly.
	asset_path: str = ""
	num_poses: int = 1
	min_detection_confidence: float = 0.5


@dataclass(frozen=True)
class PollerConfig:
	interval_ms: int = 100
	# Skip a firing while the previous tick is still running (no overlapping ticks).
	single_flight: bool = True


@dataclass(frozen=True)
class OverlayConfig:
	keypoint_name: str = "nose"
	min_score: float = 0.5
	indicator_size: int = 40
	silhouette_width: int = 300
	silhouette_height: int = 400
	silhouette_image: str = ""


@dataclass(frozen=True)
class PreviewConfig:
	fps: float = 15.0
	jpeg_quality: int = 80


@dataclass(frozen=True)
class ServerConfig:
	host: str = "127.0.0.1"
	port: int = 8000


@dataclass(frozen=True)
class LoggingConfig:
	level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
	camera: CameraConfig = field(default_factory=CameraConfig)
	model: ModelConfig = field(default_factory=ModelConfig)
	poller: PollerConfig = field(default_factory=PollerConfig)
	overlay: OverlayConfig = field(default_factory=OverlayConfig)
	preview: PreviewConfig = field(default_factory=PreviewConfig)
	server: ServerConfig = field(default_factory=ServerConfig)
	logging: LoggingConfig = field(default_factory=LoggingConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# silhouette/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	Used by the server entry point's --config flag.
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except (TypeError, ValueError):
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except (TypeError, ValueError):
		return float(default)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except (OSError, ValueError) as e:
		# If config is malformed, fail safe to defaults (but keep app running).
		logger.warning("[Config] could not read %s, using defaults: %s", p, e)
		return AppConfig()

	if not isinstance(raw, dict):
		logger.warning("[Config] %s is not a JSON object, using defaults", p)
		return AppConfig()

	cam_backend = _as_str(_deep_get(raw, ["camera", "backend"], "opencv"), "opencv").strip().lower()
	cam_index = _as_int(_deep_get(raw, ["camera", "index"], 0), 0)
	cam_width = _as_int(_deep_get(raw, ["camera", "width"], 640), 640)
	cam_height = _as_int(_deep_get(raw, ["camera", "height"], 480), 480)
	cam_url = _as_str(_deep_get(raw, ["camera", "snapshot_url"], ""), "").strip()
	cam_timeout = _as_float(_deep_get(raw, ["camera", "timeout_seconds"], 2.0), 2.0)

	model_variant = _as_str(_deep_get(raw, ["model", "variant"], "pose_landmarker_lite"), "pose_landmarker_lite").strip()
	model_cache_dir = _as_str(_deep_get(raw, ["model", "cache_dir"], "models"), "models").strip()
	model_asset = _as_str(_deep_get(raw, ["model", "asset_path"], ""), "").strip()
	model_num_poses = _as_int(_deep_get(raw, ["model", "num_poses"], 1), 1)
	model_min_det = _as_float(_deep_get(raw, ["model", "min_detection_confidence"], 0.5), 0.5)

	poll_interval = _as_int(_deep_get(raw, ["poller", "interval_ms"], 100), 100)
	poll_single = _as_bool(_deep_get(raw, ["poller", "single_flight"], True), True)

	ov_name = _as_str(_deep_get(raw, ["overlay", "keypoint_name"], "nose"), "nose").strip()
	ov_min_score = _as_float(_deep_get(raw, ["overlay", "min_score"], 0.5), 0.5)
	ov_size = _as_int(_deep_get(raw, ["overlay", "indicator_size"], 40), 40)
	ov_sil_w = _as_int(_deep_get(raw, ["overlay", "silhouette_width"], 300), 300)
	ov_sil_h = _as_int(_deep_get(raw, ["overlay", "silhouette_height"], 400), 400)
	ov_sil_img = _as_str(_deep_get(raw, ["overlay", "silhouette_image"], ""), "").strip()

	prev_fps = _as_float(_deep_get(raw, ["preview", "fps"], 15.0), 15.0)
	prev_quality = _as_int(_deep_get(raw, ["preview", "jpeg_quality"], 80), 80)

	srv_host = _as_str(_deep_get(raw, ["server", "host"], "127.0.0.1"), "127.0.0.1")
	srv_port = _as_int(_deep_get(raw, ["server", "port"], 8000), 8000)

	log_level = _as_str(_deep_get(raw, ["logging", "level"], "INFO"), "INFO").strip().upper()

	return AppConfig(
		camera=CameraConfig(
			backend=cam_backend or "opencv",
			index=cam_index if cam_index >= 0 else 0,
			width=cam_width if cam_width > 0 else 640,
			height=cam_height if cam_height > 0 else 480,
			snapshot_url=cam_url,
			timeout_seconds=cam_timeout if cam_timeout > 0.0 else 2.0,
		),
		model=ModelConfig(
			variant=model_variant or "pose_landmarker_lite",
			cache_dir=model_cache_dir or "models",
			asset_path=model_asset,
			num_poses=model_num_poses if model_num_poses > 0 else 1,
			min_detection_confidence=min(1.0, max(0.0, model_min_det)),
		),
		poller=PollerConfig(
			# Anything tighter than 10ms just spins the loop.
			interval_ms=max(10, poll_interval),
			single_flight=poll_single,
		),
		overlay=OverlayConfig(
			keypoint_name=ov_name or "nose",
			min_score=min(1.0, max(0.0, ov_min_score)),
			indicator_size=ov_size if ov_size > 0 else 40,
			silhouette_width=ov_sil_w if ov_sil_w > 0 else 300,
			silhouette_height=ov_sil_h if ov_sil_h > 0 else 400,
			silhouette_image=ov_sil_img,
		),
		preview=PreviewConfig(
			fps=prev_fps if prev_fps > 0.0 else 15.0,
			jpeg_quality=prev_quality if 1 <= prev_quality <= 95 else 80,
		),
		server=ServerConfig(host=srv_host or "127.0.0.1", port=srv_port if srv_port > 0 else 8000),
		logging=LoggingConfig(level=log_level or "INFO"),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
