"""
Deletion Worker - processes the work queue one message at a time
"""

import json
import time
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol

from chat_deleter.errors import (
    AlreadyGone,
    Cancelled,
    PermanentlyDenied,
    RateLimited,
    Transient,
    check_delete_result,
)
from chat_deleter.models import (
    ChannelMap,
    DeleteResult,
    DeleterConfig,
    Item,
    RunResult,
    WorkQueue,
    channel_map_to_dict,
    copy_channel_map,
)
from chat_deleter.permissions import PermissionResolver
from chat_deleter.queue_builder import WorkQueueBuilder
from chat_deleter.reporting import LOG_LEVELS, StatusReporter, format_time
from chat_deleter.settings_store import AppSettingsStore


logger = logging.getLogger(__name__)


class DeleteCapability(Protocol):
    """Remote delete call for a single message"""

    def delete_message(self, channel_id: str, message_id: str) -> DeleteResult: ...


# === Denial policies ===

class MarkDeletedPolicy:
    """Record undeletable messages in the deleted set so they are never retried"""

    def record_denied(self, store: AppSettingsStore, message_id: str) -> None:
        store.mark_message_as_deleted(message_id)


class SeparateSkippedPolicy:
    """Record undeletable messages in their own set, keeping the deleted set exact"""

    def record_denied(self, store: AppSettingsStore, message_id: str) -> None:
        store.mark_message_as_skipped(message_id)


@dataclass
class RunState:
    """Whether a deletion run is in progress.

    ``is_running`` is the cooperative stop flag; ``active`` stays set until the
    loop has actually exited, so a stopped run cannot overlap a new one.
    """
    is_running: bool = False
    active: bool = False


class DeletionWorker:
    """Sequential, cancellable, rate-limit aware deletion of queued messages"""

    def __init__(
        self,
        api: DeleteCapability,
        resolver: PermissionResolver,
        store: AppSettingsStore,
        reporter: Optional[StatusReporter] = None,
        config: Optional[DeleterConfig] = None,
        denial_policy: Any = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.api = api
        self.resolver = resolver
        self.store = store
        self.reporter = reporter
        self.config = config or DeleterConfig()
        self.denial_policy = denial_policy or MarkDeletedPolicy()
        self.sleep = sleep
        self.clock = clock
        self.run_state = RunState()
        self.item_channels: dict = {}

    # === Run control ===

    def is_deletion_running(self) -> bool:
        return self.run_state.is_running

    def stop_deletion(self) -> bool:
        """Ask the running loop to stop at the next message boundary"""
        if not self.run_state.is_running:
            return False
        self.run_state.is_running = False
        logger.warning("Deletion process stopped")
        return True

    def _check_cancelled(self) -> None:
        if not self.run_state.is_running:
            raise Cancelled("Deletion process was stopped by user")

    # === Main Entry Point ===

    async def start_deletion(self, channels: ChannelMap) -> RunResult:
        """Delete every accessible, not yet resolved message in the channel map"""
        if self.run_state.is_running or self.run_state.active:
            await self._log("Deletion process is already running", "WARN")
            return RunResult(status="rejected")

        self.run_state.is_running = True
        self.run_state.active = True
        try:
            return await self._run(channels)
        finally:
            self.store.flush()
            self.run_state.is_running = False
            self.run_state.active = False
            self.item_channels = {}

    async def _run(self, channels: ChannelMap) -> RunResult:
        interval = self.config.interval_ms

        await self._status("Processing...", 0, "Calculating Permissions...")

        self.resolver.reset()
        builder = WorkQueueBuilder(self.resolver, self.reporter, self.config.chunk_size)
        queue = await builder.build(channels, self.store.get_resolved_messages())
        self.item_channels = queue.item_channels

        working = copy_channel_map(channels)
        stats = self.store.get_deletion_stats()
        result = RunResult(status="running", skipped=len(queue.already_processed))

        await self._log(f"Found {queue.total} messages total", "INFO")
        if queue.already_processed:
            await self._log(
                f"{len(queue.already_processed)} messages already deleted in previous sessions (skipping)", "INFO"
            )
        await self._log(f"{len(queue.items)} messages will be processed for deletion", "INFO")
        await self._log(f"{stats.total_deleted} messages deleted overall in previous sessions", "INFO")

        await self._status("Deleting messages...", 0, f"{format_time(len(queue.items) * interval)} remaining")

        last_report = self.clock()

        try:
            for index, item in enumerate(queue.items):
                self._check_cancelled()

                await self._process_item(item, working, result)
                result.processed += 1

                now = self.clock()
                if now - last_report >= self.config.report_every:
                    await self._report_progress(queue, result)
                    self.store.flush()
                    last_report = now

                if index < len(queue.items) - 1:
                    await self.sleep(interval / 1000)
        except Cancelled:
            return await self._finish_stopped(working, result)

        return await self._finish_completed(queue, working, result)

    # === Message Processing ===

    async def _process_item(self, item: Item, working: ChannelMap, result: RunResult) -> None:
        """Delete one message, retrying the same message while rate limited"""
        channel_type = working[item.channel_id].channel_type
        retries = 0

        while True:
            response = await self._delete(item)

            try:
                check_delete_result(response, item.item_id)
            except RateLimited as e:
                result.rate_limited += 1
                limit = self.config.max_rate_limit_retries
                if limit is not None and retries >= limit:
                    await self._log(f"Giving up on message {item.item_id} after {retries} rate limited retries", "ERROR")
                    result.failed += 1
                    return
                await self._log(str(e), "WARN", {"retry_after": e.retry_after})
                retries += 1
                await self.sleep(e.retry_after)
                self._check_cancelled()
                continue
            except AlreadyGone as e:
                await self._log(str(e), "WARN", e.body)
                self.store.mark_message_as_deleted(item.item_id)
                self._remove_from_map(working, item.item_id)
                result.already_gone += 1
            except PermanentlyDenied as e:
                await self._log(str(e), "ERROR", e.body)
                self.denial_policy.record_denied(self.store, item.item_id)
                self._remove_from_map(working, item.item_id)
                result.denied += 1
            except Transient as e:
                await self._log(str(e), "ERROR", e.body)
                result.failed += 1
            else:
                await self._log(f"Deleted message {item.item_id}", "INFO")
                self.store.update_deletion_stats(channel_type)
                self.store.mark_message_as_deleted(item.item_id)
                self._remove_from_map(working, item.item_id)
                result.completed += 1
            return

    async def _delete(self, item: Item) -> DeleteResult:
        try:
            return await asyncio.to_thread(self.api.delete_message, item.channel_id, item.item_id)
        except Exception as e:
            logger.error(f"Delete request for message {item.item_id} failed: {e}", exc_info=True)
            return DeleteResult(status=0, body={"message": str(e)})

    def _remove_from_map(self, working: ChannelMap, message_id: str) -> None:
        channel_id = self.item_channels.get(message_id)
        channel = working.get(channel_id) if channel_id else None
        if channel and message_id in channel.message_ids:
            channel.message_ids.remove(message_id)

    # === Termination ===

    async def _finish_stopped(self, working: ChannelMap, result: RunResult) -> RunResult:
        self.store.flush()
        result.status = "stopped"
        result.remaining = working

        await self._status("Stopped (deletion incomplete)")
        await self._log("Deletion process was stopped by user", "WARN")
        return result

    async def _finish_completed(self, queue: WorkQueue, working: ChannelMap, result: RunResult) -> RunResult:
        for message_id in queue.already_processed:
            self._remove_from_map(working, message_id)

        self.store.set_json_content(json.dumps(channel_map_to_dict(working)))
        self.store.flush()
        result.status = "completed"
        result.remaining = working

        stats = self.store.get_deletion_stats()
        await self._log(f"Deletion complete. {result.completed} messages deleted this session.", "INFO")
        await self._log(f"{result.skipped} messages were already deleted and skipped.", "INFO")
        await self._log(f"Total: {stats.total_deleted} messages deleted overall.", "INFO")
        await self._status("Deletion complete", 100)
        return result

    # === Progress ===

    async def _report_progress(self, queue: WorkQueue, result: RunResult) -> None:
        done = result.processed + len(queue.already_processed)
        progress = (done / queue.total) * 100 if queue.total else 100.0
        remaining = len(queue.items) - result.processed
        eta = (
            f"{format_time(remaining * self.config.interval_ms)} remaining"
            if remaining > 0 else "Almost done"
        )

        await self._status(
            f"Deleting messages... ({done}/{queue.total} complete, {result.skipped} skipped)",
            progress,
            eta
        )
        await asyncio.sleep(0)

    async def _status(self, message: str, progress: Optional[float] = None, eta: Optional[str] = None) -> None:
        if self.reporter:
            await self.reporter.update_status(message, progress, eta)

    async def _log(self, message: str, level: str = "INFO", details: Any = None) -> None:
        logger.log(LOG_LEVELS.get(level, logging.INFO), message)
        if self.reporter:
            await self.reporter.add_log_entry(message, level, details)
