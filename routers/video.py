"""Preview routes. Routes: /video/snapshot.jpg, /video/mjpeg (camera frame with the overlay drawn on it)."""
import asyncio
import logging
import time
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response, StreamingResponse

from app_state import AppState
from deps import get_session, get_state
from silhouette.errors import FrameCaptureError
from silhouette.overlay import draw_overlay, encode_jpeg

logger = logging.getLogger(__name__)

router = APIRouter(tags=["video"])

_NO_CACHE = {
	"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
	"Pragma": "no-cache",
}


async def preview_jpeg(state: AppState) -> Optional[bytes]:
	"""
	Latest camera frame with the current overlay, JPEG-encoded; None if the camera is not active.
	While polling, the poller's last frame is reused so the preview does not compete for device frames.
	"""
	session = state.session
	if session is None or not session.gate.granted:
		return None
	stream = session.latest_frame()
	if stream is None:
		try:
			stream = await state.camera.read_stream()
		except FrameCaptureError as e:
			logger.debug("[Video] preview capture failed: %s", e)
			return None
	if not stream.active:
		return None
	quality = state.cfg.preview.jpeg_quality if state.cfg is not None else 80
	loop = asyncio.get_running_loop()

	def _encode() -> bytes:
		im = draw_overlay(stream.current, session.overlay(), silhouette_image=state.silhouette_image)
		return encode_jpeg(im, quality=quality)

	return await loop.run_in_executor(None, _encode)


async def mjpeg_preview(state: AppState, fps: float) -> AsyncIterator[bytes]:
	"""
	MJPEG generator for the preview. Yields full multipart chunks including boundary and headers.
	"""
	boundary = b"frame"
	try:
		max_fps = float(fps)
	except (TypeError, ValueError):
		max_fps = 15.0
	if not (max_fps > 0.0):
		max_fps = 15.0
	min_interval = 1.0 / max_fps

	while True:
		t0 = time.monotonic()
		jpeg = await preview_jpeg(state)
		if jpeg is None:
			await asyncio.sleep(0.1)
			continue
		yield b"--" + boundary + b"\r\n"
		yield b"Content-Type: image/jpeg\r\n"
		yield b"Content-Length: " + str(len(jpeg)).encode("ascii") + b"\r\n\r\n"
		yield jpeg + b"\r\n"
		elapsed = time.monotonic() - t0
		if elapsed < min_interval:
			await asyncio.sleep(min_interval - elapsed)


@router.get("/video/snapshot.jpg")
async def video_snapshot(state: AppState = Depends(get_state), session=Depends(get_session)):
	"""Return a single preview frame with the overlay drawn."""
	jpeg = await preview_jpeg(state)
	if jpeg is None:
		raise HTTPException(status_code=404, detail="No active camera frame available")
	return Response(content=jpeg, media_type="image/jpeg", headers=_NO_CACHE)


@router.get("/video/mjpeg")
async def video_mjpeg(fps: Optional[float] = None, state: AppState = Depends(get_state), session=Depends(get_session)):
	"""Live MJPEG preview. Browser can display via <img src="/video/mjpeg">."""
	if fps is None:
		fps = state.cfg.preview.fps if state.cfg is not None else 15.0
	headers = dict(_NO_CACHE)
	headers["Connection"] = "keep-alive"
	return StreamingResponse(
		mjpeg_preview(state, fps=float(fps)),
		media_type="multipart/x-mixed-replace; boundary=frame",
		headers=headers,
	)
