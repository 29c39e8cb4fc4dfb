"""
Work Queue Builder - flattens a channel map into the ordered list of messages to delete
"""

import asyncio
import logging
from typing import AbstractSet, Optional

from chat_deleter.models import ChannelMap, Item, WorkQueue
from chat_deleter.permissions import PermissionResolver
from chat_deleter.reporting import LOG_LEVELS, StatusReporter


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500


class WorkQueueBuilder:
    """Builds the processing queue in chunks so the event loop stays responsive"""

    def __init__(
        self,
        resolver: PermissionResolver,
        reporter: Optional[StatusReporter] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        self.resolver = resolver
        self.reporter = reporter
        self.chunk_size = max(1, chunk_size)

    # === Main Entry Point ===

    async def build(self, channels: ChannelMap, resolved_ids: AbstractSet[str]) -> WorkQueue:
        """Return queued items in channel order, then message order"""
        queue = WorkQueue()
        seen = 0

        for channel_id, channel in channels.items():
            allowed = await self.resolver.resolve(channel_id, channel.channel_type)
            await asyncio.sleep(0)

            if not allowed:
                queue.inaccessible.append(channel_id)
                await self._log(f"Cannot access {channel.describe()}", "ERROR")
                continue

            for message_id in channel.message_ids:
                if message_id in queue.item_channels:
                    logger.debug(f"Skipping duplicate message {message_id} in channel {channel_id}")
                    continue

                queue.item_channels[message_id] = channel_id

                if message_id in resolved_ids:
                    queue.already_processed.append(message_id)
                else:
                    queue.items.append(Item(item_id=message_id, channel_id=channel_id))

                seen += 1
                # Yield control every chunk
                if seen % self.chunk_size == 0:
                    await asyncio.sleep(0)

        queue.total = len(queue.items) + len(queue.already_processed)

        logger.debug(
            f"Built queue: {len(queue.items)} to process, {len(queue.already_processed)} already processed, "
            f"{len(queue.inaccessible)} inaccessible channels"
        )
        return queue

    # === Progress ===

    async def _log(self, message: str, level: str) -> None:
        logger.log(LOG_LEVELS.get(level, logging.INFO), message)
        if self.reporter:
            await self.reporter.add_log_entry(message, level)
