"""Shared test fixtures and configuration."""

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from restchain.context import ExecutionContext
from restchain.errors import RemoteError
from restchain.request import Entity
from restchain.response import ApiResponse
from restchain.version import Version


class FakeTransport:
    """In-memory transport returning queued responses and recording calls.

    Queue ApiResponse objects for successful calls and exceptions for
    failures; error statuses are raised as RemoteError like HttpTransport does.
    """

    def __init__(self, es_version: str = "6.0.0") -> None:
        self.es_version = Version.parse(es_version)
        self.outcomes: List[Any] = []
        self.calls: List[Dict[str, Any]] = []
        self.version_calls = 0
        self.version_error: Optional[Exception] = None

    def queue(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    def version(self) -> Version:
        self.version_calls += 1
        if self.version_error is not None:
            raise self.version_error
        return self.es_version

    def call_api(
        self,
        api_name: str,
        params: Dict[str, str],
        entity: Optional[Entity],
        headers: Dict[str, str],
    ) -> ApiResponse:
        self.calls.append(
            {"api": api_name, "params": params, "entity": entity, "headers": headers}
        )
        outcome = self.outcomes.pop(0) if self.outcomes else ApiResponse(200, {})
        if isinstance(outcome, Exception):
            raise outcome
        if not outcome.success:
            raise RemoteError(api_name, outcome)
        return outcome


@pytest.fixture
def mock_display() -> MagicMock:
    """Display double that swallows all output."""
    return MagicMock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def context(transport: FakeTransport, mock_display: MagicMock) -> ExecutionContext:
    """Fresh execution context on the fake transport."""
    return ExecutionContext(transport, mock_display)
