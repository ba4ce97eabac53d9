import argparse
import asyncio
import functools
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from routers import overlay as overlay_routes
from routers import sessions as session_routes
from routers import video as video_routes
from routers import ws as ws_routes
from silhouette import __version__
from silhouette.camera_backend import CameraBackend, get_camera_backend
from silhouette.config import AppConfig, get_config, set_config_path
from silhouette.overlay import OverlayRenderer, SilhouetteSpec, load_silhouette_image
from silhouette.pose.keypoint_filter import KeypointFilter
from silhouette.pose.loader import ModelLoader, create_detector, parse_variant
from silhouette.session import OverlaySession

logger = logging.getLogger(__name__)


def build_session(cfg: AppConfig, camera: CameraBackend, loader: Optional[ModelLoader] = None) -> OverlaySession:
	if loader is None:
		loader = ModelLoader(
			parse_variant(cfg.model.variant),
			factory=functools.partial(create_detector, cfg=cfg.model),
		)
	renderer = OverlayRenderer(
		KeypointFilter(name=cfg.overlay.keypoint_name, min_score=cfg.overlay.min_score),
		SilhouetteSpec(
			width=cfg.overlay.silhouette_width,
			height=cfg.overlay.silhouette_height,
			image_path=cfg.overlay.silhouette_image or None,
		),
		indicator_size=cfg.overlay.indicator_size,
	)
	return OverlaySession(
		camera,
		loader,
		renderer,
		interval_s=cfg.poller.interval_ms / 1000.0,
		single_flight=cfg.poller.single_flight,
	)


def create_app(
	cfg: Optional[AppConfig] = None,
	*,
	camera: Optional[CameraBackend] = None,
	loader: Optional[ModelLoader] = None,
) -> FastAPI:
	"""
	Build the app. `camera` / `loader` default to the configured backend and the
	MediaPipe loader; tests pass fakes.
	"""
	cfg = cfg or get_config()

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		state: AppState = app.state.state
		state.camera = camera if camera is not None else get_camera_backend(cfg)
		state.session = build_session(cfg, state.camera, loader)
		state.silhouette_image = load_silhouette_image(state.session.renderer.silhouette)

		def _push_overlay(_poses) -> None:
			# Called synchronously from PoseStore.publish; the send runs as its own task.
			try:
				loop = asyncio.get_running_loop()
			except RuntimeError:
				logger.debug("[WS] publish outside the event loop; overlay push skipped")
				return
			task = loop.create_task(state.manager.broadcast_json(ws_routes.overlay_message(state.session)))
			state.push_tasks.add(task)
			task.add_done_callback(state.push_tasks.discard)

		state.unsubscribe_overlay = state.session.store.subscribe(_push_overlay)
		try:
			# Detector construction failure is fatal: it aborts startup.
			await state.session.mount()
			yield
		finally:
			if state.unsubscribe_overlay is not None:
				state.unsubscribe_overlay()
				state.unsubscribe_overlay = None
			if state.push_tasks:
				await asyncio.gather(*list(state.push_tasks), return_exceptions=True)
			try:
				await state.session.unmount()
			finally:
				state.session.loader.reset()
				try:
					state.camera.close()
				except Exception as e:
					logger.warning("[Camera] close failed: %s", e)

	app = FastAPI(
		title="Pose Silhouette Overlay",
		description="Live pose keypoint indicators over a reference silhouette.",
		version=__version__,
		lifespan=lifespan,
	)
	app.state.state = AppState(cfg)
	app.state.state.manager = ws_routes.ConnectionManager()
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(overlay_routes.router)
	app.include_router(session_routes.router)
	app.include_router(video_routes.router)
	app.include_router(ws_routes.router)
	return app


def main(argv: Optional[list[str]] = None) -> int:
	p = argparse.ArgumentParser(description="Pose silhouette overlay server")
	p.add_argument("--config", default=None, help="Path to config.json (optional)")
	p.add_argument("--host", default=None)
	p.add_argument("--port", type=int, default=None)
	p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
	args = p.parse_args(argv)

	if args.config:
		set_config_path(args.config)
	cfg = get_config()

	level = logging.DEBUG if args.verbose else getattr(logging, cfg.logging.level, logging.INFO)
	logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")

	import uvicorn

	uvicorn.run(
		create_app(cfg),
		host=args.host or cfg.server.host,
		port=int(args.port or cfg.server.port),
		log_level=logging.getLevelName(level).lower(),
	)
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
