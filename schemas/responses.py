"""Pydantic response models for API validation and docs."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SilhouetteModel(BaseModel):
	width: int
	height: int


class IndicatorModel(BaseModel):
	"""One indicator square in preview coordinates (top-left anchored)."""

	name: str
	left: float
	top: float
	width: float
	height: float


class OverlayResponse(BaseModel):
	"""Response from GET /overlay."""

	silhouette: SilhouetteModel
	indicators: List[IndicatorModel] = Field(default_factory=list)
	poses_version: int = Field(0, description="Store version the overlay was rendered from.")


class KeypointModel(BaseModel):
	name: str
	x: float
	y: float
	score: float = Field(..., ge=0.0, le=1.0)


class PoseModel(BaseModel):
	keypoints: List[KeypointModel] = Field(default_factory=list)
	score: Optional[float] = None


class PosesResponse(BaseModel):
	"""Response from GET /poses."""

	poses: List[PoseModel] = Field(default_factory=list)
	version: int = 0
	t_host: Optional[float] = None


class ModelStatus(BaseModel):
	variant: str
	ready: bool
	backend: Optional[str] = None


class StatusResponse(BaseModel):
	"""Response from GET /status."""

	mounted: bool
	permission: str
	model: ModelStatus
	active: bool
	poller: Optional[Dict[str, Any]] = None
	poses_version: int = 0
	t_last_poses: Optional[float] = None
	camera: Dict[str, Any] = Field(default_factory=dict)


class SessionActionResponse(BaseModel):
	"""Response from POST /session/*."""

	detail: str
	status: StatusResponse
