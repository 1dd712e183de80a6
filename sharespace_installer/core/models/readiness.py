"""
Readiness — structured container state parsed from ``docker compose ps``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ReadinessState(str, Enum):
    """Readiness of a single compose service."""

    RUNNING = "running"        # running, and healthy or without a health check
    STARTING = "starting"      # created, restarting, or health check pending
    UNHEALTHY = "unhealthy"    # running but failing its health check
    EXITED = "exited"          # stopped, dead, or removing
    MISSING = "missing"        # no container for the service


class ServiceStatus(BaseModel):
    """One row of ``docker compose ps --format json``."""

    service: str
    name: str = ""
    state: str = ""
    health: str = ""
    status: str = ""

    @property
    def readiness(self) -> ReadinessState:
        state = self.state.lower()
        health = self.health.lower()
        if state == "running":
            if health in ("", "healthy"):
                return ReadinessState.RUNNING
            if health == "unhealthy":
                return ReadinessState.UNHEALTHY
            return ReadinessState.STARTING
        if state in ("created", "restarting"):
            return ReadinessState.STARTING
        return ReadinessState.EXITED
