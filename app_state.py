"""
Explicit app state: single source of truth for the runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
import asyncio
from typing import Any, Callable, Optional, Set

from silhouette.config import AppConfig


class AppState:
	"""
	Holds the runtime objects shared by routes. Replaces module-level globals;
	the overlay session owns all pose/camera state.
	"""
	cfg: Optional[AppConfig] = None

	# Camera collaborator and overlay session (set in lifespan)
	camera: Any = None
	session: Any = None

	# WebSocket fan-out (set at app creation)
	manager: Any = None

	# Cached silhouette image for the preview (PIL.Image or None)
	silhouette_image: Any = None

	# Unsubscribe callable for the store -> websocket bridge
	unsubscribe_overlay: Optional[Callable[[], None]] = None

	# In-flight overlay pushes (kept referenced until they finish)
	push_tasks: Set[asyncio.Task]

	def __init__(self, cfg: Optional[AppConfig] = None) -> None:
		self.cfg = cfg
		self.push_tasks = set()
