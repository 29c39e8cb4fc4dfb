#!/usr/bin/env python3
"""
Discord Service - Facade for deletion operations
Handles the REST client and delegates to specialized classes
"""

import logging
from typing import Any, Dict, Optional

import requests

from chat_deleter.config import Settings
from chat_deleter.deleter import DeletionWorker, MarkDeletedPolicy
from chat_deleter.errors import ChannelLookupError
from chat_deleter.models import ChannelMap, DeleteResult, DeleterConfig, DeletionStats, RunResult
from chat_deleter.permissions import PermissionResolver
from chat_deleter.reporting import StatusReporter, build_import_summary
from chat_deleter.settings_store import AppSettingsStore
from chat_deleter.validation import ValidationResult, parse_channel_map


logger = logging.getLogger(__name__)

CHANNEL_TYPES = {
    0: 'GUILD_TEXT',
    1: 'DM',
    2: 'GUILD_VOICE',
    3: 'GROUP_DM',
    4: 'GUILD_CATEGORY',
    5: 'GUILD_ANNOUNCEMENT',
    10: 'ANNOUNCEMENT_THREAD',
    11: 'PUBLIC_THREAD',
    12: 'PRIVATE_THREAD',
    13: 'GUILD_STAGE_VOICE',
    15: 'GUILD_FORUM',
    16: 'GUILD_MEDIA',
}


class DiscordClient:
    """Blocking REST client for the two remote capabilities the deleter needs"""

    def __init__(
        self,
        token: str,
        api_base: str = 'https://discord.com/api/v9',
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': token,
            'Content-Type': 'application/json',
        })
        self._channels: Dict[str, Dict[str, Any]] = {}

    # === Delete capability ===

    def delete_message(self, channel_id: str, message_id: str) -> DeleteResult:
        """DELETE a message, transport failures come back as status 0"""
        url = f"{self.api_base}/channels/{channel_id}/messages/{message_id}"
        try:
            response = self.session.delete(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Delete request failed for message {message_id}: {e}")
            return DeleteResult(status=0, body={"message": str(e)})

        return DeleteResult(
            status=response.status_code,
            body=self._json_body(response),
            headers=dict(response.headers)
        )

    # === Permission capability ===

    def _fetch_channel(self, channel_id: str) -> Optional[Dict[str, Any]]:
        """Return the channel object, None when access is forbidden"""
        if channel_id in self._channels:
            return self._channels[channel_id]

        response = self.session.get(f"{self.api_base}/channels/{channel_id}", timeout=self.timeout)

        if response.status_code == 404:
            raise ChannelLookupError(f"Unknown channel {channel_id}")
        if response.status_code in (401, 403):
            return None
        response.raise_for_status()

        channel = response.json()
        self._channels[channel_id] = channel
        return channel

    def can_access(self, channel_id: str) -> bool:
        return self._fetch_channel(channel_id) is not None

    def get_channel_type(self, channel_id: str) -> str:
        channel = self._fetch_channel(channel_id)
        if channel is None:
            raise ChannelLookupError(f"Channel {channel_id} is not visible to this account")
        return CHANNEL_TYPES.get(channel.get('type'), str(channel.get('type')))

    @staticmethod
    def _json_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


class DeleterService:
    """Facade for deletion operations - wires store, client, resolver and worker"""

    def __init__(
        self,
        store: AppSettingsStore,
        client: Any,
        reporter: Optional[StatusReporter] = None,
        report_every: float = 1.0,
        denial_policy: Any = None
    ):
        self.store = store
        self.client = client
        self.reporter = reporter
        self.report_every = report_every
        self.resolver = PermissionResolver(client)
        self.worker = DeletionWorker(
            api=client,
            resolver=self.resolver,
            store=store,
            reporter=reporter,
            config=DeleterConfig(interval_ms=store.get_interval(), report_every=report_every),
            denial_policy=denial_policy or MarkDeletedPolicy()
        )

    @classmethod
    def from_settings(cls, settings: Settings, store: AppSettingsStore, reporter: Optional[StatusReporter] = None) -> 'DeleterService':
        client = DiscordClient(settings.discord_token, settings.api_base, settings.request_timeout)
        return cls(store, client, reporter, report_every=settings.report_every)

    def set_reporter(self, reporter: StatusReporter) -> None:
        """Set the sink for progress updates"""
        self.reporter = reporter
        self.worker.reporter = reporter

    # === Import ===

    def import_payload(self, text: str) -> ValidationResult:
        """Validate a JSON payload and remember it for the next run"""
        result = parse_channel_map(text)
        if result.ok:
            self.store.set_json_content(text)
            logger.info(f"Imported {len(result.channels)} channels")
        else:
            logger.warning(f"Rejected import: {result.error}")
        return result

    def load_stored_payload(self) -> ValidationResult:
        return parse_channel_map(self.store.get_json_content())

    def summarize(self, channels: ChannelMap) -> Dict[str, Any]:
        return build_import_summary(channels, self.store.get_deletion_stats(), self.store.get_interval())

    # === Settings ===

    def get_interval(self) -> int:
        return self.store.get_interval()

    def set_interval(self, interval: Any) -> int:
        return self.store.set_interval(interval)

    def get_stats(self) -> DeletionStats:
        return self.store.get_deletion_stats()

    # === Deletion (delegates to DeletionWorker) ===

    def is_running(self) -> bool:
        return self.worker.is_deletion_running()

    def is_active(self) -> bool:
        """True until a run has fully exited, including after a stop request"""
        return self.worker.run_state.active

    async def start_deletion(self, channels: ChannelMap) -> RunResult:
        """Run the worker with the currently stored interval"""
        self.worker.config.interval_ms = self.store.get_interval()
        logger.info(f"Starting deletion process with interval {self.worker.config.interval_ms}ms")
        return await self.worker.start_deletion(channels)

    def stop_deletion(self) -> bool:
        return self.worker.stop_deletion()

    def clear_all_data(self) -> bool:
        """Reset stats, stored payload and resolved messages, refused while running"""
        if self.is_active():
            logger.warning("Cannot clear data while deletion is in progress")
            return False
        self.store.clear_all_data()
        return True
