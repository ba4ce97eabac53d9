"""
Error taxonomy.

- DetectorInitError is fatal and propagates to whoever mounted the session.
- FrameCaptureError / PoseEstimationError are per-tick and recoverable; the
  poller catches them, logs, and keeps the previously published poses.
- A permission denial is not an error: the session just never activates.
"""


class SilhouetteError(Exception):
	"""Base class for errors raised by this package."""


class DetectorInitError(SilhouetteError):
	"""Raised when the pose detector cannot be constructed."""


class FrameCaptureError(SilhouetteError):
	"""Raised when an active camera fails to deliver a frame."""


class PoseEstimationError(SilhouetteError):
	"""Raised when the detector fails on a frame."""
