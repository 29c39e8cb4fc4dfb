"""
Status reporting - sinks the deletion worker pushes progress and log events to
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from chat_deleter.models import ChannelMap, DeletionStats


logger = logging.getLogger(__name__)

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'ERROR': logging.ERROR,
}


class StatusReporter(Protocol):
    """Fire-and-forget sink for progress and log events"""

    async def update_status(self, message: str, progress: Optional[float] = None, eta: Optional[str] = None) -> None: ...

    async def add_log_entry(self, message: str, level: str = 'INFO', details: Any = None) -> None: ...


def format_log_line(message: str, level: str = 'INFO', details: Any = None) -> str:
    """Render a log entry as '[LEVEL] message: details'"""
    line = f"[{level}] {message}"
    if details:
        line += f": {details}"
    return line


class LoggingStatusReporter:
    """Forwards everything to the standard logging module"""

    def __init__(self, name: str = 'chat_deleter.status'):
        self._logger = logging.getLogger(name)

    async def update_status(self, message: str, progress: Optional[float] = None, eta: Optional[str] = None) -> None:
        parts = [message]
        if progress is not None:
            parts.append(f"{progress:.1f}%")
        if eta:
            parts.append(f"ETA: {eta}")
        self._logger.info(" | ".join(parts))

    async def add_log_entry(self, message: str, level: str = 'INFO', details: Any = None) -> None:
        self._logger.log(LOG_LEVELS.get(level, logging.INFO), format_log_line(message, level, details))


class BroadcastStatusReporter:
    """Turns status events into (message_type, data) calls, e.g. a WebSocket broadcast"""

    def __init__(self, broadcast: Callable[[str, Dict], Awaitable[None]]):
        self.broadcast = broadcast

    async def update_status(self, message: str, progress: Optional[float] = None, eta: Optional[str] = None) -> None:
        data: Dict[str, Any] = {"message": message}
        if progress is not None:
            data["progress"] = max(0.0, min(100.0, progress))
        if eta:
            data["eta"] = eta
        await self.broadcast("status", data)

    async def add_log_entry(self, message: str, level: str = 'INFO', details: Any = None) -> None:
        await self.broadcast("log", {
            "message": message,
            "level": level,
            "details": details,
            "line": format_log_line(message, level, details)
        })


class CompositeStatusReporter:
    """Fans every event out to several reporters"""

    def __init__(self, *reporters: StatusReporter):
        self.reporters = list(reporters)

    async def update_status(self, message: str, progress: Optional[float] = None, eta: Optional[str] = None) -> None:
        for reporter in self.reporters:
            await reporter.update_status(message, progress, eta)

    async def add_log_entry(self, message: str, level: str = 'INFO', details: Any = None) -> None:
        for reporter in self.reporters:
            await reporter.add_log_entry(message, level, details)


# === Formatting ===

def format_time(total_milliseconds: float) -> str:
    """Format a duration in ms as '1 day, 2 hours, 3 minutes, 4 seconds'"""
    if total_milliseconds < 0:
        return "N/A"
    if total_milliseconds == 0:
        return "Instantly"

    seconds = int(total_milliseconds // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    seconds %= 60
    minutes %= 60
    hours %= 24

    parts = []
    if days > 0:
        parts.append(f"{days} day{'s' if days > 1 else ''}")
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours > 1 else ''}")
    if minutes > 0:
        parts.append(f"{minutes} minute{'s' if minutes > 1 else ''}")
    if seconds > 0 or not parts:
        parts.append(f"{seconds} second{'s' if seconds != 1 else ''}")

    return ", ".join(parts)


def format_channel_type(channel_type: str) -> str:
    """GUILD_TEXT -> Guild Text"""
    return " ".join(word[:1].upper() + word[1:] for word in channel_type.lower().split("_"))


def build_import_summary(channels: ChannelMap, stats: DeletionStats, interval_ms: int) -> Dict[str, Any]:
    """Summarize an imported channel map: pending counts per type, history and ETA"""
    pending_by_type: Dict[str, int] = {}
    total_messages = 0

    for channel in channels.values():
        count = len(channel.message_ids)
        total_messages += count
        pending_by_type[channel.channel_type] = pending_by_type.get(channel.channel_type, 0) + count

    lines: List[str] = []
    if pending_by_type:
        lines.append("Messages Pending Deletion")
        lines.extend(f"  {format_channel_type(kind)}: {count}" for kind, count in pending_by_type.items())
    else:
        lines.append("No messages found in the imported channels.")

    if stats.total_deleted > 0:
        lines.append("Previously Deleted Messages")
        lines.extend(
            f"  {format_channel_type(kind)}: {count}"
            for kind, count in stats.deleted_by_channel_type.items()
        )
        lines.append(f"Total Messages Deleted: {stats.total_deleted}")

    lines.append(f"Total Messages to delete: {total_messages}")

    return {
        "pending_by_type": pending_by_type,
        "previously_deleted": dict(stats.deleted_by_channel_type),
        "total_deleted": stats.total_deleted,
        "total_messages": total_messages,
        "eta": format_time(total_messages * interval_ms),
        "lines": lines,
    }
