"""Overlay read routes. Routes: /status, /overlay, /poses."""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from app_state import AppState
from deps import get_session, get_state
from schemas.responses import OverlayResponse, PosesResponse, StatusResponse
from silhouette.pose.types import pose_set_to_obj

router = APIRouter(tags=["overlay"])


def session_status(state: AppState) -> Dict[str, Any]:
	st = state.session.status()
	try:
		st["camera"] = state.camera.get_status() if state.camera is not None else {}
	except Exception as e:
		st["camera"] = {"error": repr(e)}
	return st


@router.get("/status", response_model=StatusResponse)
async def status(state: AppState = Depends(get_state), session=Depends(get_session)):
	"""Permission, model readiness, poller counters and camera status."""
	return session_status(state)


@router.get("/overlay", response_model=OverlayResponse)
async def overlay(session=Depends(get_session)):
	"""Indicator squares for the latest poses, over the reference silhouette."""
	out = session.overlay().to_dict()
	out["poses_version"] = session.store.version
	return out


@router.get("/poses", response_model=PosesResponse)
async def poses(session=Depends(get_session)):
	"""Latest published PoseSet as returned by the detector."""
	return {
		"poses": pose_set_to_obj(session.poses()),
		"version": session.store.version,
		"t_host": session.store.t_host,
	}
