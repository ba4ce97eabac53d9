"""Pydantic response models for API validation and docs."""
from schemas.responses import (
	IndicatorModel,
	OverlayResponse,
	PosesResponse,
	SessionActionResponse,
	StatusResponse,
)

__all__ = [
	"IndicatorModel",
	"OverlayResponse",
	"PosesResponse",
	"SessionActionResponse",
	"StatusResponse",
]
