from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from silhouette.camera_backend import CameraBackend, CameraStream
from silhouette.overlay import Overlay, OverlayRenderer
from silhouette.permission import PermissionGate, PermissionState
from silhouette.poller import PosePoller, PoseStore, Sleep
from silhouette.pose.loader import ModelLoader
from silhouette.pose.types import PoseSet

logger = logging.getLogger(__name__)


class OverlaySession:
	"""
	State owned by the overlay screen: camera, permission, detector, latest
	poses and the poller that links them.

	The poller runs only while the session is mounted, permission is granted
	and the detector is ready. Whenever one of those changes the session
	starts or tears down the poller (one poller at a time).
	"""

	def __init__(
		self,
		camera: CameraBackend,
		loader: ModelLoader,
		renderer: Optional[OverlayRenderer] = None,
		*,
		interval_s: float = 0.1,
		single_flight: bool = True,
		sleep: Optional[Sleep] = None,
	) -> None:
		self.camera = camera
		self.loader = loader
		self.renderer = renderer or OverlayRenderer()
		self.store = PoseStore()
		self.gate = PermissionGate(camera)
		self._interval_s = float(interval_s)
		self._single_flight = bool(single_flight)
		self._sleep = sleep
		self._poller: Optional[PosePoller] = None
		self._mounted = False
		self._lock = asyncio.Lock()

	@property
	def mounted(self) -> bool:
		return self._mounted

	@property
	def permission(self) -> PermissionState:
		return self.gate.state

	@property
	def poller(self) -> Optional[PosePoller]:
		return self._poller

	@property
	def active(self) -> bool:
		return self._mounted and self.gate.granted and self.loader.ready

	async def mount(self) -> None:
		"""
		Ask for camera permission and load the detector concurrently, then start
		polling if both succeeded. DetectorInitError propagates.
		"""
		async with self._lock:
			self._mounted = True
			perm_task = asyncio.ensure_future(self.gate.acquire())
			model_task = asyncio.ensure_future(self.loader.load())
			try:
				await asyncio.gather(perm_task, model_task)
			except BaseException:
				perm_task.cancel()
				model_task.cancel()
				await asyncio.gather(perm_task, model_task, return_exceptions=True)
				raise
			finally:
				await self._sync_poller()
			if self.gate.state == PermissionState.DENIED:
				logger.info("[Session] camera permission denied; overlay stays inactive")

	async def unmount(self) -> None:
		async with self._lock:
			self._mounted = False
			await self._sync_poller()
			# Next mount asks again.
			self.gate = PermissionGate(self.camera)

	async def reset_detector(self) -> None:
		async with self._lock:
			# The poller goes first: a tick may still be running inference on the detector.
			await self._stop_poller()
			self.loader.reset()
			await self._sync_poller()

	async def _sync_poller(self) -> None:
		if self.active:
			if self._poller is None:
				detector = self.loader.detector
				if detector is None:
					raise RuntimeError("OverlaySession is active without a detector")
				self._poller = PosePoller(
					self.camera,
					detector,
					self.store,
					interval_s=self._interval_s,
					single_flight=self._single_flight,
					sleep=self._sleep,
				)
				self._poller.start()
			return
		await self._stop_poller()

	async def _stop_poller(self) -> None:
		poller, self._poller = self._poller, None
		if poller is not None:
			await poller.stop()

	def latest_frame(self) -> Optional[CameraStream]:
		"""Last frame the poller read, if it is polling and that read was active."""
		return self._poller.last_frame if self._poller is not None else None

	def poses(self) -> PoseSet:
		return self.store.poses

	def overlay(self) -> Overlay:
		return self.renderer.render(self.store.poses)

	def status(self) -> Dict[str, Any]:
		detector = self.loader.detector
		return {
			"mounted": self._mounted,
			"permission": self.gate.state.value,
			"model": {
				"variant": self.loader.variant.value,
				"ready": self.loader.ready,
				"backend": detector.name() if detector is not None else None,
			},
			"active": self.active,
			"poller": self._poller.stats() if self._poller is not None else None,
			"poses_version": self.store.version,
			"t_last_poses": self.store.t_host,
		}
