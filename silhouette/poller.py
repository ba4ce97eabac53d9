"""
Periodic pose pipeline: camera frame -> detector -> published PoseSet.

The poller fires on a fixed period. Each firing runs one tick:

1. read the camera stream; an inactive stream skips the tick,
2. run the detector on the frame,
3. publish the new PoseSet to the store.

A capture or estimation failure is logged and recorded as a failed tick; the
previously published poses stay in place and nothing is retried until the next
firing.

With single_flight (the default) a firing that arrives while a tick is still
running is skipped. Without it ticks may overlap and whichever finishes last
wins.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from silhouette.camera_backend import CameraBackend, CameraStream
from silhouette.errors import FrameCaptureError, PoseEstimationError
from silhouette.pose.base import Detector
from silhouette.pose.types import PoseSet

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
Listener = Callable[[PoseSet], None]


class PoseStore:
	"""
	Latest published PoseSet. The poller is the only writer; readers take
	snapshots. Subscribers are called synchronously after every publish.
	"""

	def __init__(self) -> None:
		self._poses: PoseSet = ()
		self._version = 0
		self._t_host: Optional[float] = None
		self._listeners: List[Listener] = []

	@property
	def poses(self) -> PoseSet:
		return self._poses

	@property
	def version(self) -> int:
		return self._version

	@property
	def t_host(self) -> Optional[float]:
		return self._t_host

	def publish(self, poses: PoseSet) -> None:
		self._poses = tuple(poses)
		self._version += 1
		self._t_host = time.time()
		for cb in list(self._listeners):
			try:
				cb(self._poses)
			except Exception:
				logger.exception("[Poller] pose listener failed")

	def subscribe(self, cb: Listener) -> Callable[[], None]:
		self._listeners.append(cb)

		def _unsubscribe() -> None:
			try:
				self._listeners.remove(cb)
			except ValueError:
				pass

		return _unsubscribe


class TickOutcome(str, Enum):
	PUBLISHED = "published"
	INACTIVE = "inactive"
	FAILED = "failed"
	BUSY = "busy"
	STOPPED = "stopped"


@dataclass(frozen=True)
class TickResult:
	outcome: TickOutcome
	reason: Optional[str] = None
	t_host: float = field(default_factory=time.time)

	def to_dict(self) -> Dict[str, Any]:
		return {"outcome": self.outcome.value, "reason": self.reason, "t_host": self.t_host}


class PosePoller:
	def __init__(
		self,
		camera: CameraBackend,
		detector: Detector,
		store: PoseStore,
		*,
		interval_s: float = 0.1,
		single_flight: bool = True,
		sleep: Optional[Sleep] = None,
	) -> None:
		if interval_s <= 0:
			raise ValueError("interval_s must be positive")
		self._camera = camera
		self._detector = detector
		self._store = store
		self._interval_s = float(interval_s)
		self._single_flight = bool(single_flight)
		self._sleep: Sleep = sleep or asyncio.sleep

		self._timer: Optional[asyncio.Task] = None
		self._inflight: Set[asyncio.Task] = set()
		self._stopped = False
		self._last: Optional[TickResult] = None
		self._last_frame: Optional[CameraStream] = None
		self._counts: Dict[str, int] = {o.value: 0 for o in TickOutcome}
		self._ticks = 0

	@property
	def running(self) -> bool:
		return self._timer is not None and not self._timer.done()

	@property
	def stopped(self) -> bool:
		return self._stopped

	@property
	def busy(self) -> bool:
		return bool(self._inflight)

	@property
	def last_result(self) -> Optional[TickResult]:
		return self._last

	@property
	def last_frame(self) -> Optional[CameraStream]:
		"""Most recent active frame read by a tick; None after an inactive or failed read."""
		return self._last_frame

	def start(self) -> None:
		if self._stopped:
			raise RuntimeError("PosePoller cannot be restarted after stop(); create a new one")
		if self._timer is not None:
			return
		self._timer = asyncio.create_task(self._run(), name="pose-poller")
		logger.info(
			"[Poller] started (every %.0f ms, single_flight=%s)", self._interval_s * 1000.0, self._single_flight
		)

	async def stop(self) -> None:
		"""
		Cancel the timer and abandon in-flight ticks. Idempotent. After this no
		tick calls the detector or publishes.
		"""
		self._stopped = True
		timer, self._timer = self._timer, None
		pending = list(self._inflight)
		if timer is not None:
			timer.cancel()
		for t in pending:
			t.cancel()
		tasks = ([timer] if timer is not None else []) + pending
		if tasks:
			await asyncio.gather(*tasks, return_exceptions=True)
		if timer is not None:
			logger.info("[Poller] stopped after %d ticks", self._ticks)

	async def _run(self) -> None:
		while True:
			await self._sleep(self._interval_s)
			if self._stopped:
				return
			self._fire()

	def _fire(self) -> None:
		if self._single_flight and self._inflight:
			self._record(TickResult(TickOutcome.BUSY, reason="previous tick still running"))
			logger.debug("[Poller] skipped firing: previous tick still running")
			return
		task = asyncio.create_task(self.tick())
		self._inflight.add(task)
		task.add_done_callback(self._inflight.discard)

	async def tick(self) -> TickResult:
		"""
		Run one poll cycle now. Never raises for capture/estimation failures;
		the returned TickResult says what happened.
		"""
		if self._stopped:
			return TickResult(TickOutcome.STOPPED)
		self._ticks += 1

		try:
			stream = await self._camera.read_stream()
		except Exception as e:
			self._last_frame = None
			return self._fail(e if isinstance(e, FrameCaptureError) else FrameCaptureError(repr(e)))

		if not stream.active:
			self._last_frame = None
			logger.debug("[Poller] camera not active; keeping previous poses")
			return self._record(TickResult(TickOutcome.INACTIVE, reason="camera not active"))

		self._last_frame = stream

		# Torn down while the frame was being read: do not touch the detector.
		if self._stopped:
			return TickResult(TickOutcome.STOPPED)

		try:
			poses = await self._detector.estimate(stream.current)
		except Exception as e:
			return self._fail(e if isinstance(e, PoseEstimationError) else PoseEstimationError(repr(e)))

		if self._stopped:
			return TickResult(TickOutcome.STOPPED)

		self._store.publish(poses)
		return self._record(TickResult(TickOutcome.PUBLISHED))

	def _fail(self, err: Exception) -> TickResult:
		logger.warning("[Poller] tick failed, keeping previous poses: %s: %s", type(err).__name__, err)
		return self._record(TickResult(TickOutcome.FAILED, reason=f"{type(err).__name__}: {err}"))

	def _record(self, result: TickResult) -> TickResult:
		self._last = result
		self._counts[result.outcome.value] = self._counts.get(result.outcome.value, 0) + 1
		return result

	def stats(self) -> Dict[str, Any]:
		return {
			"running": self.running,
			"stopped": self._stopped,
			"busy": self.busy,
			"interval_ms": int(round(self._interval_s * 1000.0)),
			"single_flight": self._single_flight,
			"ticks": int(self._ticks),
			"counts": dict(self._counts),
			"last": self._last.to_dict() if self._last else None,
		}

