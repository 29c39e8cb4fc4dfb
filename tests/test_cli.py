"""
Tests for the command line runner
"""

import json
import pytest

from chat_deleter import cli
from chat_deleter.discord_service import DeleterService
from chat_deleter.settings_store import AppSettingsStore, MemoryStore

from conftest import FakeClock, FakeSleep, MockDiscordApi, make_channel, make_export


@pytest.fixture
def api():
    return MockDiscordApi()


@pytest.fixture
def service(monkeypatch, api):
    """Service on a memory store, returned by every _build_service call"""
    svc = DeleterService(AppSettingsStore(MemoryStore()), api, report_every=0.0)
    svc.worker.sleep = FakeSleep(FakeClock())
    monkeypatch.setattr(cli, '_build_service', lambda settings, reporter=None: svc)
    monkeypatch.setattr(cli.signal, 'signal', lambda signum, handler: None)
    return svc


@pytest.fixture
def export_file(tmp_path):
    path = tmp_path / 'export.json'
    path.write_text(json.dumps(make_export([
        make_channel('100', ['m1', 'm2'], 'GUILD_TEXT', 'general'),
        make_channel('200', ['m3'], 'DM', 'alice'),
    ])))
    return path


class TestRunCommand:
    """Tests for `chat-deleter run`"""

    def test_run_deletes_file_contents(self, service, api, export_file):
        assert cli.main(['run', str(export_file), '--interval', '2000']) == 0

        assert api.delete_calls == ['m1', 'm2', 'm3']
        assert service.get_interval() == 2000
        assert service.worker.sleep.calls == [2.0, 2.0]
        assert service.get_stats().total_deleted == 3

    def test_missing_file(self, service, tmp_path):
        assert cli.main(['run', str(tmp_path / 'missing.json')]) == 1

    def test_no_stored_payload(self, service, api):
        assert cli.main(['run']) == 1
        assert api.delete_calls == []

    def test_empty_payload(self, service, tmp_path):
        path = tmp_path / 'empty.json'
        path.write_text('{}')

        assert cli.main(['run', str(path)]) == 1


class TestOtherCommands:
    """Tests for `stats` and `clear`"""

    def test_stats(self, service):
        service.store.update_deletion_stats('DM')

        assert cli.main(['stats']) == 0

    def test_clear_with_confirmation_flag(self, service):
        service.store.update_deletion_stats('DM')

        assert cli.main(['clear', '--yes']) == 0
        assert service.get_stats().total_deleted == 0

    def test_clear_declined(self, service, monkeypatch):
        service.store.update_deletion_stats('DM')
        monkeypatch.setattr('builtins.input', lambda: 'n')

        assert cli.main(['clear']) == 1
        assert service.get_stats().total_deleted == 1
