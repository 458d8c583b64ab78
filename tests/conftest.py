from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pytest
from zion.core.commands.dispatcher import Dispatcher
from zion.core.common.exceptions import TransportError
from zion.core.interfaces.transport_interface import (
    ITransport,
    RequestSpec,
    TransportResponse,
)


class FakeClock:
    """Manually advanced seconds clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport(ITransport):
    """Replays scripted outcomes and records every request it was sent.

    Each outcome is either an HTTP status code, a TransportResponse or an
    exception instance to raise.
    """

    def __init__(self, outcomes: Iterable[object] = ()) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, RequestSpec]] = []
        self.closed = False

    async def send(self, base_url: str, request: RequestSpec) -> TransportResponse:
        self.calls.append((base_url, request))
        outcome = self.outcomes.pop(0) if self.outcomes else 200
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, TransportResponse):
            return outcome
        return TransportResponse(status=int(outcome), body={"ok": outcome == 200})

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def dispatcher() -> Dispatcher:
    return Dispatcher()


@pytest.fixture
def connection_error() -> TransportError:
    return TransportError("Could not reach host", details={"error_type": "ConnectError"})


@pytest.fixture
def temp_config_path(tmp_path: Path) -> Path:
    """Create a minimal valid YAML config file and return its path."""
    import yaml

    cfg = {
        "command_prefix": "!",
        "history_limit": 5,
        "logging": {"level": "INFO"},
        "services": {
            "openweather": {"api_key": "yaml-weather-key"},
            "custom": {
                "base_url": "https://custom.example.com/api/",
                "rate_limit": {"requests": 2, "window_ms": 1000},
            },
        },
    }
    p = tmp_path / "zion.yaml"
    with p.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f, sort_keys=False)
    return p


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """Return the FakeTransport class so tests can script outcomes."""
    return FakeTransport
