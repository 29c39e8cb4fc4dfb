"""
Shared data models for Chat Deleter
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Channel:
    """A channel from the export and the message ids still pending in it"""
    id: str
    display_name: str
    channel_type: str
    message_ids: List[str] = field(default_factory=list)
    server_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the export's JSON shape"""
        data: Dict[str, Any] = {
            'messageIds': list(self.message_ids),
            'displayName': self.display_name,
            'channelType': self.channel_type,
        }
        if self.server_name is not None:
            data['serverName'] = self.server_name
        return data

    def describe(self) -> str:
        """Human readable identity used in log lines"""
        location = f" in {self.server_name}" if self.server_name else ""
        return f"{self.display_name}{location} ({self.id})"


ChannelMap = Dict[str, Channel]


def copy_channel_map(channels: ChannelMap) -> ChannelMap:
    """Deep copy used as the worker's mutable working copy"""
    return copy.deepcopy(channels)


def channel_map_to_dict(channels: ChannelMap) -> Dict[str, Dict[str, Any]]:
    return {channel_id: channel.to_dict() for channel_id, channel in channels.items()}


@dataclass(frozen=True)
class Item:
    """One deletable message"""
    item_id: str
    channel_id: str


@dataclass
class DeletionStats:
    """Cumulative statistics across every run"""
    total_deleted: int = 0
    deleted_by_channel_type: Dict[str, int] = field(default_factory=dict)

    def record(self, channel_type: str) -> None:
        self.total_deleted += 1
        self.deleted_by_channel_type[channel_type] = self.deleted_by_channel_type.get(channel_type, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalDeleted': self.total_deleted,
            'deletedByChannelType': dict(self.deleted_by_channel_type),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DeletionStats':
        if not data:
            return cls()
        return cls(
            total_deleted=int(data.get('totalDeleted', 0)),
            deleted_by_channel_type={k: int(v) for k, v in data.get('deletedByChannelType', {}).items()},
        )


@dataclass
class DeleterConfig:
    """Configuration for a deletion run"""
    interval_ms: int = 1500
    report_every: float = 1.0
    chunk_size: int = 500
    max_rate_limit_retries: Optional[int] = None


@dataclass
class WorkQueue:
    """Output of the queue builder, handed to the deletion worker"""
    items: List[Item] = field(default_factory=list)
    item_channels: Dict[str, str] = field(default_factory=dict)
    already_processed: List[str] = field(default_factory=list)
    inaccessible: List[str] = field(default_factory=list)
    total: int = 0


@dataclass
class DeleteResult:
    """Outcome of a single remote delete request"""
    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class RunResult:
    """Counters reported when a deletion run ends"""
    status: str
    processed: int = 0
    completed: int = 0
    already_gone: int = 0
    denied: int = 0
    failed: int = 0
    skipped: int = 0
    rate_limited: int = 0
    remaining: ChannelMap = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'processed': self.processed,
            'completed': self.completed,
            'already_gone': self.already_gone,
            'denied': self.denied,
            'failed': self.failed,
            'skipped': self.skipped,
            'rate_limited': self.rate_limited,
            'remaining_messages': sum(len(c.message_ids) for c in self.remaining.values()),
        }
