"""
Permission Resolver - decides per channel whether the session may access it
"""

import asyncio
import logging
from typing import Dict, Optional, Protocol


logger = logging.getLogger(__name__)

DIRECT_MESSAGE_TYPES = frozenset({'DM', 'GROUP_DM'})


class PermissionCapability(Protocol):
    """External view-permission check for the current session"""

    def can_access(self, channel_id: str) -> bool: ...

    def get_channel_type(self, channel_id: str) -> str: ...


class PermissionResolver:
    """Resolves and caches channel access for one deletion run"""

    def __init__(self, capability: PermissionCapability):
        self.capability = capability
        self.cache: Dict[str, bool] = {}

    def reset(self) -> None:
        """Drop cached results, called at the start of every run"""
        self.cache.clear()

    async def resolve(self, channel_id: str, channel_type: Optional[str] = None) -> bool:
        """Return whether the channel is accessible, failing closed on lookup errors"""
        if channel_id in self.cache:
            return self.cache[channel_id]

        try:
            if channel_type is None:
                channel_type = await asyncio.to_thread(self.capability.get_channel_type, channel_id)

            if channel_type in DIRECT_MESSAGE_TYPES:
                allowed = True
            else:
                allowed = bool(await asyncio.to_thread(self.capability.can_access, channel_id))
        except LookupError as e:
            logger.warning(f"Could not resolve channel {channel_id}, treating as inaccessible: {e}")
            allowed = False
        except OSError as e:
            logger.error(f"Permission check failed for channel {channel_id}, treating as inaccessible: {e}")
            allowed = False

        self.cache[channel_id] = allowed
        return allowed
