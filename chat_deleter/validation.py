"""
Validation of imported channel maps
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter, ValidationError

from chat_deleter.models import Channel, ChannelMap


logger = logging.getLogger(__name__)


class ChannelRecord(BaseModel):
    """One channel entry of the export"""
    model_config = ConfigDict(populate_by_name=True)

    message_ids: List[StrictStr] = Field(alias='messageIds')
    display_name: StrictStr = Field(alias='displayName')
    server_name: Optional[StrictStr] = Field(default=None, alias='serverName')
    channel_type: StrictStr = Field(alias='channelType')


_channel_map_adapter = TypeAdapter(Dict[str, ChannelRecord])


@dataclass
class ValidationResult:
    """Tagged result: either ok with channels, or an error message"""
    ok: bool
    channels: ChannelMap = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.ok and not self.channels


def validate_channel_map(data: Any) -> ValidationResult:
    """Validate already-decoded JSON data"""
    if not isinstance(data, dict):
        return ValidationResult(ok=False, error="The data does not have the correct ChannelMap structure.")

    try:
        records = _channel_map_adapter.validate_python(data)
    except ValidationError as e:
        logger.debug(f"Channel map rejected: {e}")
        return ValidationResult(
            ok=False,
            error=f"The data does not have the correct ChannelMap structure: {e.error_count()} problem(s) found."
        )

    channels = {
        channel_id: Channel(
            id=channel_id,
            display_name=record.display_name,
            channel_type=record.channel_type,
            message_ids=list(record.message_ids),
            server_name=record.server_name,
        )
        for channel_id, record in records.items()
    }
    return ValidationResult(ok=True, channels=channels)


def parse_channel_map(text: str) -> ValidationResult:
    """Decode and validate a JSON payload"""
    if not text or not text.strip():
        return ValidationResult(ok=False, error="No JSON data provided.")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return ValidationResult(ok=False, error=f"Invalid JSON data: Not valid JSON. {e.msg}")

    return validate_channel_map(data)
