"""
Shared test fixtures for Chat Deleter tests
"""

import os
import tempfile

# Keep the web app's durable store out of the working tree
os.environ.setdefault('DELETER_STORE_PATH', os.path.join(tempfile.mkdtemp(), 'deleter.db'))

import pytest
from typing import Callable, Dict, List, Optional, Set

from chat_deleter.errors import ChannelLookupError
from chat_deleter.models import Channel, DeleteResult, DeleterConfig
from chat_deleter.permissions import PermissionResolver
from chat_deleter.settings_store import AppSettingsStore, MemoryStore


# === Mock Discord API ===

class MockDiscordApi:
    """Mock REST client implementing the delete and permission capabilities.

    ``responses`` scripts per-message results: each entry is a list of
    DeleteResult objects returned in order, the last one repeating.
    Messages without a script are deleted successfully (204).
    """

    def __init__(
        self,
        responses: Optional[Dict[str, List[DeleteResult]]] = None,
        accessible: Optional[Set[str]] = None,
        unknown: Optional[Set[str]] = None,
        channel_types: Optional[Dict[str, str]] = None
    ):
        self._responses = {k: list(v) for k, v in (responses or {}).items()}
        self._accessible = accessible
        self._unknown = unknown or set()
        self._channel_types = channel_types or {}
        self.delete_calls: List[str] = []
        self.access_calls: List[str] = []
        self.deleted: Set[str] = set()
        self.on_delete: Optional[Callable[[str], None]] = None

    def delete_message(self, channel_id: str, message_id: str) -> DeleteResult:
        self.delete_calls.append(message_id)
        if self.on_delete:
            self.on_delete(message_id)

        script = self._responses.get(message_id)
        if script:
            result = script.pop(0) if len(script) > 1 else script[0]
        else:
            result = DeleteResult(status=204)

        if result.ok:
            self.deleted.add(message_id)
        return result

    def can_access(self, channel_id: str) -> bool:
        self.access_calls.append(channel_id)
        if channel_id in self._unknown:
            raise ChannelLookupError(f"Unknown channel {channel_id}")
        return self._accessible is None or channel_id in self._accessible

    def get_channel_type(self, channel_id: str) -> str:
        if channel_id in self._unknown or channel_id not in self._channel_types:
            raise ChannelLookupError(f"Unknown channel {channel_id}")
        return self._channel_types[channel_id]


def not_found() -> DeleteResult:
    return DeleteResult(status=404, body={'message': 'Unknown Message', 'code': 10008})


def forbidden() -> DeleteResult:
    return DeleteResult(status=403, body={'message': 'Cannot execute action on a system message', 'code': 50021})


def rate_limited(retry_after: float) -> DeleteResult:
    return DeleteResult(status=429, body={'message': 'You are being rate limited.', 'retry_after': retry_after, 'global': False})


def server_error() -> DeleteResult:
    return DeleteResult(status=500, body={'message': '500: Internal Server Error'})


# === Recording reporter ===

class RecordingReporter:
    """StatusReporter that keeps every event for assertions"""

    def __init__(self):
        self.statuses: List[tuple] = []
        self.logs: List[tuple] = []

    async def update_status(self, message, progress=None, eta=None):
        self.statuses.append((message, progress, eta))

    async def add_log_entry(self, message, level='INFO', details=None):
        self.logs.append((message, level, details))

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [m for m, lvl, _ in self.logs if level is None or lvl == level]


# === Fake time ===

class FakeClock:
    """Monotonic clock advanced only by FakeSleep"""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeSleep:
    """Records requested sleeps and advances the fake clock instead of waiting"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.now += seconds


# === Helper to create channel data ===

def make_channel(
    channel_id: str,
    message_ids: List[str],
    channel_type: str = 'GUILD_TEXT',
    display_name: Optional[str] = None,
    server_name: Optional[str] = 'Test Server'
) -> Channel:
    """Helper to create a Channel matching the export structure"""
    return Channel(
        id=channel_id,
        display_name=display_name or f"#{channel_id}",
        channel_type=channel_type,
        message_ids=list(message_ids),
        server_name=server_name if channel_type.startswith('GUILD') else None,
    )


def make_export(channels: List[Channel]) -> Dict[str, dict]:
    """Export-shaped JSON dict for a list of channels"""
    return {channel.id: channel.to_dict() for channel in channels}


# === Fixtures ===

@pytest.fixture
def sample_channels() -> Dict[str, Channel]:
    """Three channels of different types, insertion ordered"""
    channels = [
        make_channel('100', ['m1', 'm2', 'm3'], 'GUILD_TEXT', 'general'),
        make_channel('200', ['m4', 'm5'], 'DM', 'alice'),
        make_channel('300', ['m6'], 'GROUP_DM', 'friends'),
    ]
    return {c.id: c for c in channels}


@pytest.fixture
def memory_backend() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def settings_store(memory_backend) -> AppSettingsStore:
    return AppSettingsStore(memory_backend)


@pytest.fixture
def mock_api() -> MockDiscordApi:
    return MockDiscordApi()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(fake_clock) -> FakeSleep:
    return FakeSleep(fake_clock)


@pytest.fixture
def default_config() -> DeleterConfig:
    """Default DeleterConfig for tests, report on every message"""
    return DeleterConfig(interval_ms=1500, report_every=0.0)


@pytest.fixture
def resolver(mock_api) -> PermissionResolver:
    return PermissionResolver(mock_api)
