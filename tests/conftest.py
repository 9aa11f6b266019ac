"""Shared fixtures: a recording audit sink, fresh caches and a fake subprocess launcher."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from hypothesis import HealthCheck, settings
from nixops_mcp.audit import AuditEvent, AuditLogger
from nixops_mcp.caches import CacheRegistry
from nixops_mcp.registry import registry

# The autouse audit and cache fixtures are reset per test, not per generated example
settings.register_profile("nixops", suppress_health_check=[HealthCheck.function_scoped_fixture])
settings.load_profile("nixops")


class RecordingAuditLogger(AuditLogger):
    """AuditLogger that keeps every event it emits."""

    def __init__(self):
        super().__init__()
        self.records: list[tuple[str, AuditEvent]] = []

    def log(self, level, event):
        self.records.append((level, event))
        super().log(level, event)

    @property
    def events(self):
        return [event for _level, event in self.records]

    def of_type(self, event_type):
        return [event for event in self.events if event.event_type == event_type]


class FakeExec:
    """Stand-in for asyncio.create_subprocess_exec that replays canned results."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.stdin: list[bytes | None] = []
        self.responses: list[tuple[bytes, bytes, int]] = []
        self.default = (b"", b"", 0)

    def respond(self, stdout="", stderr="", returncode=0):
        self.responses.append((stdout.encode(), stderr.encode(), returncode))
        return self

    async def __call__(self, *argv, **kwargs):
        self.calls.append(list(argv))
        self.kwargs.append(kwargs)
        stdout, stderr, returncode = self.responses.pop(0) if self.responses else self.default
        process = MagicMock()
        process.returncode = returncode

        async def communicate(data=None):
            self.stdin.append(data)
            return stdout, stderr

        process.communicate = AsyncMock(side_effect=communicate)
        return process

    @property
    def argv(self):
        return self.calls[-1]


@pytest.fixture(autouse=True)
def audit(monkeypatch):
    recorder = RecordingAuditLogger()
    monkeypatch.setattr(registry, "audit", recorder)
    return recorder


@pytest.fixture(autouse=True)
def caches(monkeypatch):
    fresh = CacheRegistry()
    monkeypatch.setattr(registry, "caches", fresh)
    return fresh


@pytest.fixture
def fake_exec():
    fake = FakeExec()
    with patch("nixops_mcp.executor.asyncio.create_subprocess_exec", new=fake):
        yield fake


@pytest.fixture
def available():
    """Control which programs shutil.which reports as installed (default: all)."""
    programs: set[str] | None = None

    def which(name):
        if programs is None or name in programs:
            return f"/run/current-system/sw/bin/{name}"
        return None

    class Available:
        def only(self, *names):
            nonlocal programs
            programs = set(names)

    with patch("nixops_mcp.executor.shutil.which", side_effect=which):
        yield Available()
