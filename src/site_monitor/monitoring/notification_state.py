"""
Per-URL notification state for edge-triggered alerts.

Only a Healthy -> Unhealthy or Unhealthy -> Healthy transition can alert.
The first observation of a URL just records its state.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Dict

logger = logging.getLogger(__name__)


class NotificationState(Enum):
    """Last known health of a URL for alerting purposes."""

    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class NotificationStateMachine:
    """
    Decides whether a health observation warrants a down or recovered alert.

    A URL with no entry is UNKNOWN. observe_down/observe_recovered only move
    the state on their own transition or on the first observation; an
    observation of the opposite kind leaves it alone so the matching method
    can still see the edge.

    Usage:
        states = NotificationStateMachine()

        if states.observe_down(url, record.is_healthy):
            dispatcher.send_down(...)

        if states.observe_recovered(url, record.is_healthy):
            dispatcher.send_recovered(...)
        states.reset(url)
    """

    def __init__(self) -> None:
        self._states: Dict[str, NotificationState] = {}
        self._lock = threading.Lock()

    def observe_down(self, url: str, is_healthy: bool) -> bool:
        """
        Record an observation and check for a Healthy -> Unhealthy edge.

        Returns:
            True if a down alert should be sent
        """
        observed = _state_of(is_healthy)
        with self._lock:
            last = self._states.get(url, NotificationState.UNKNOWN)

            if last is NotificationState.HEALTHY and observed is NotificationState.UNHEALTHY:
                self._states[url] = NotificationState.UNHEALTHY
                logger.debug(f"Down transition for {url}")
                return True

            if last is NotificationState.UNKNOWN:
                self._states[url] = observed

        return False

    def observe_recovered(self, url: str, is_healthy: bool) -> bool:
        """
        Record an observation and check for an Unhealthy -> Healthy edge.

        Returns:
            True if a recovered alert should be sent
        """
        observed = _state_of(is_healthy)
        with self._lock:
            last = self._states.get(url, NotificationState.UNKNOWN)

            if last is NotificationState.UNHEALTHY and observed is NotificationState.HEALTHY:
                self._states[url] = NotificationState.HEALTHY
                logger.debug(f"Recovered transition for {url}")
                return True

            if last is NotificationState.UNKNOWN:
                self._states[url] = observed

        return False

    def reset(self, url: str) -> None:
        """
        Re-arm down alerting for a URL.

        The URL goes back to the healthy sentinel, so the next unhealthy
        observation fires a down alert whatever was seen before.
        """
        with self._lock:
            self._states[url] = NotificationState.HEALTHY

    def state(self, url: str) -> NotificationState:
        with self._lock:
            return self._states.get(url, NotificationState.UNKNOWN)

    def forget(self, url: str) -> None:
        """Drop all state for a URL, making it UNKNOWN again."""
        with self._lock:
            self._states.pop(url, None)

    def clear(self) -> None:
        with self._lock:
            self._states.clear()


def _state_of(is_healthy: bool) -> NotificationState:
    return NotificationState.HEALTHY if is_healthy else NotificationState.UNHEALTHY
