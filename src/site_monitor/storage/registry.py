"""
Target registry - the set of monitored URLs.

Duplicate URLs are allowed and kept as independent targets. Downstream
status and notification state are keyed by URL, so duplicates share them.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from site_monitor.errors import InvalidInputError, TargetNotFoundError
from site_monitor.storage.models import MonitoredTarget

logger = logging.getLogger(__name__)


class TargetRegistry:
    """
    In-memory registry of monitored targets, in insertion order.

    The dashboard thread and the event loop both touch the registry, so all
    access goes through a lock. list() returns a snapshot.

    Usage:
        registry = TargetRegistry()
        target = registry.register("https://example.com", name="Example")
        registry.set_enabled(target.id, False)
        registry.deregister(target.id)
    """

    def __init__(self) -> None:
        # dicts keep insertion order
        self._targets: Dict[str, MonitoredTarget] = {}
        self._lock = threading.Lock()

    def register(self, url: str, name: Optional[str] = None) -> MonitoredTarget:
        """
        Register a new target.

        Args:
            url: URL to probe
            name: Display name (defaults to the URL)

        Returns:
            The new MonitoredTarget (enabled)

        Raises:
            InvalidInputError: If url is empty or not a string
        """
        if not isinstance(url, str) or not url.strip():
            raise InvalidInputError("URL is required", field="url")
        if name is not None and not isinstance(name, str):
            raise InvalidInputError("Name must be a string", field="name")

        url = url.strip()
        target = MonitoredTarget(url=url, name=(name or "").strip() or url)

        with self._lock:
            self._targets[target.id] = target

        logger.info(f"Registered target {target.id}: {target.name} ({target.url})")
        return target

    def deregister(self, target_id: str) -> bool:
        """Remove a target. Unknown ids are ignored."""
        with self._lock:
            target = self._targets.pop(target_id, None)

        if target is None:
            logger.debug(f"Deregister ignored, unknown target {target_id}")
            return False

        logger.info(f"Deregistered target {target_id}: {target.url}")
        return True

    def set_enabled(self, target_id: str, enabled: bool) -> MonitoredTarget:
        """
        Enable or disable a target.

        Raises:
            TargetNotFoundError: If the id is not registered
        """
        with self._lock:
            target = self._targets.get(target_id)
            if target is None:
                raise TargetNotFoundError(target_id)
            target.enabled = bool(enabled)

        logger.info(f"Target {target_id} {'enabled' if target.enabled else 'disabled'}")
        return target

    def toggle_enabled(self, target_id: str) -> MonitoredTarget:
        """Flip the enabled flag of a target."""
        with self._lock:
            target = self._targets.get(target_id)
            if target is None:
                raise TargetNotFoundError(target_id)
            target.enabled = not target.enabled

        logger.info(f"Target {target_id} toggled to enabled={target.enabled}")
        return target

    def get(self, target_id: str) -> Optional[MonitoredTarget]:
        with self._lock:
            return self._targets.get(target_id)

    def find_by_url(self, url: str) -> Optional[MonitoredTarget]:
        """First registered target with this URL, if any."""
        with self._lock:
            for target in self._targets.values():
                if target.url == url:
                    return target
        return None

    def list(self) -> List[MonitoredTarget]:
        with self._lock:
            return list(self._targets.values())

    def clear(self) -> None:
        with self._lock:
            self._targets.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)
