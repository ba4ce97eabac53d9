"""Concrete CameraBackend implementations (imported lazily by get_camera_backend)."""
