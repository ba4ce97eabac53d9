"""Session lifecycle routes. Routes: /session/mount, /session/unmount, /session/reset_detector."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_session, get_state
from routers.overlay import session_status
from schemas.responses import SessionActionResponse
from silhouette.errors import DetectorInitError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session"])


@router.post("/session/mount", response_model=SessionActionResponse)
async def session_mount(state: AppState = Depends(get_state), session=Depends(get_session)):
	"""Mount (or re-mount) the overlay: ask camera permission and load the detector if needed."""
	try:
		await session.mount()
	except DetectorInitError as e:
		raise HTTPException(status_code=500, detail=f"Detector init failed: {e}")
	detail = "Overlay active." if session.active else f"Overlay inactive (permission {session.permission.value})."
	return {"detail": detail, "status": session_status(state)}


@router.post("/session/unmount", response_model=SessionActionResponse)
async def session_unmount(state: AppState = Depends(get_state), session=Depends(get_session)):
	"""Stop polling. The next mount asks for camera permission again."""
	await session.unmount()
	return {"detail": "Overlay unmounted.", "status": session_status(state)}


@router.post("/session/reset_detector", response_model=SessionActionResponse)
async def session_reset_detector(state: AppState = Depends(get_state), session=Depends(get_session)):
	"""Drop the detector (stops polling). POST /session/mount loads a new one."""
	await session.reset_detector()
	return {"detail": "Detector reset.", "status": session_status(state)}
