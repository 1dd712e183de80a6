"""
Mock adapter — universal test double for all adapter operations.

Used in mock mode and in tests to simulate adapter behavior without
touching apt, docker, or systemd. Configurable to return success,
failure, or custom responses per action.
"""

from __future__ import annotations

from sharespace_installer.adapters.base import Adapter, ExecutionContext
from sharespace_installer.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    By default, returns success for everything. Custom responses can be
    keyed by the full action ID or by its suffix (the part after the
    operation ID), so tests need not know the generated operation ID.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    @property
    def called_ids(self) -> list[str]:
        """Action IDs in call order."""
        return [ctx.action.id for ctx in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID (or suffix)."""
        self._responses[action_id] = receipt

    def set_output(self, action_id: str, output: str) -> None:
        """Configure a specific action to succeed with *output*."""
        self._responses[action_id] = Receipt.success(
            adapter=self._name,
            action_id=action_id,
            output=output,
        )

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        response = self._lookup(context.action.id)
        if response is not None:
            return response.model_copy(update={"action_id": context.action.id})

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()

    def _lookup(self, action_id: str) -> Receipt | None:
        if action_id in self._responses:
            return self._responses[action_id]
        for key, receipt in self._responses.items():
            if action_id.endswith(f":{key}"):
                return receipt
        return None
