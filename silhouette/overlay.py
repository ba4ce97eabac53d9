"""
Keypoint overlay rendering.

The overlay lives in the camera preview's coordinate space: each selected
keypoint becomes a fixed-size square indicator centered on it, shown on top of
a fixed-size reference silhouette. render() is pure; draw_overlay() produces
the preview image served by the video routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from silhouette.pose.keypoint_filter import KeypointFilter
from silhouette.pose.types import Keypoint, PoseSet

logger = logging.getLogger(__name__)

INDICATOR_COLOR = (0, 200, 0)
INDICATOR_BORDER = 2


@dataclass(frozen=True)
class SilhouetteSpec:
	width: int = 300
	height: int = 400
	image_path: Optional[str] = None


@dataclass(frozen=True)
class Indicator:
	name: str
	left: float
	top: float
	width: float
	height: float

	@property
	def center(self) -> Tuple[float, float]:
		return (self.left + self.width / 2.0, self.top + self.height / 2.0)

	def to_dict(self) -> Dict[str, Any]:
		return {"name": self.name, "left": self.left, "top": self.top, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Overlay:
	silhouette: SilhouetteSpec
	indicators: Tuple[Indicator, ...] = field(default_factory=tuple)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"silhouette": {"width": self.silhouette.width, "height": self.silhouette.height},
			"indicators": [i.to_dict() for i in self.indicators],
		}


def indicator_for(kp: Keypoint, size: float = 40) -> Indicator:
	half = float(size) / 2.0
	return Indicator(name=kp.name, left=kp.x - half, top=kp.y - half, width=float(size), height=float(size))


class OverlayRenderer:
	def __init__(
		self,
		keypoint_filter: Optional[KeypointFilter] = None,
		silhouette: Optional[SilhouetteSpec] = None,
		indicator_size: int = 40,
	) -> None:
		self._filter = keypoint_filter or KeypointFilter()
		self._silhouette = silhouette or SilhouetteSpec()
		self._size = int(indicator_size)

	@property
	def silhouette(self) -> SilhouetteSpec:
		return self._silhouette

	def render(self, poses: PoseSet) -> Overlay:
		if not poses:
			return Overlay(silhouette=self._silhouette)
		# Only the first detected person is shown.
		kps = self._filter(poses[0])
		return Overlay(
			silhouette=self._silhouette,
			indicators=tuple(indicator_for(kp, self._size) for kp in kps),
		)


def load_silhouette_image(spec: SilhouetteSpec) -> Optional[Image.Image]:
	if not spec.image_path:
		return None
	p = Path(spec.image_path)
	try:
		with Image.open(p) as im:
			return im.convert("RGBA").resize((int(spec.width), int(spec.height)))
	except OSError as e:
		logger.warning("[Overlay] could not load silhouette image %s: %s", p, e)
		return None


def draw_overlay(frame, overlay: Overlay, silhouette_image: Optional[Image.Image] = None) -> Image.Image:
	"""
	Draw the silhouette image (centered, if given) and the indicators (as rings) on an RGB frame.
	Returns a new PIL image; the frame is not modified.
	"""
	im = Image.fromarray(np.asarray(frame, dtype=np.uint8)).convert("RGB")
	if silhouette_image is not None:
		x0 = (im.width - silhouette_image.width) // 2
		y0 = (im.height - silhouette_image.height) // 2
		im.paste(silhouette_image, (x0, y0), silhouette_image)

	draw = ImageDraw.Draw(im)
	for ind in overlay.indicators:
		box = [ind.left, ind.top, ind.left + ind.width, ind.top + ind.height]
		draw.ellipse(box, outline=INDICATOR_COLOR, width=INDICATOR_BORDER)
	return im


def encode_jpeg(im: Image.Image, quality: int = 80) -> bytes:
	buf = BytesIO()
	im.save(buf, format="JPEG", quality=int(quality), optimize=True)
	return buf.getvalue()
