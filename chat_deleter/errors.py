"""
Outcome taxonomy for remote delete requests
"""

from typing import Any, Optional

from chat_deleter.models import DeleteResult


DEFAULT_RETRY_AFTER = 1.0


class DeletionError(Exception):
    """Base class for every non-success delete outcome"""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


class AlreadyGone(DeletionError):
    """The message no longer exists (404)"""


class PermanentlyDenied(DeletionError):
    """The message can never be deleted by this account (403)"""


class RateLimited(DeletionError):
    """The server asked us to slow down (429)"""

    def __init__(self, message: str, retry_after: float, status: Optional[int] = 429, body: Any = None):
        super().__init__(message, status, body)
        self.retry_after = retry_after


class Transient(DeletionError):
    """Unclassified failure, the message stays eligible for a future run"""


class Cancelled(DeletionError):
    """The run was stopped by the user"""


class ChannelLookupError(LookupError):
    """The permission capability does not know the channel"""


def _retry_after(result: DeleteResult) -> float:
    body = result.body if isinstance(result.body, dict) else {}
    for value in (body.get('retry_after'), result.headers.get('Retry-After'), result.headers.get('retry-after')):
        if value is None:
            continue
        try:
            return max(float(value), 0.0)
        except (TypeError, ValueError):
            continue
    return DEFAULT_RETRY_AFTER


def check_delete_result(result: DeleteResult, message_id: str) -> None:
    """Raise the matching DeletionError for a non-success result"""
    if result.ok:
        return

    if result.status == 404:
        raise AlreadyGone(f"Message {message_id} not found, likely already deleted", result.status, result.body)
    if result.status == 403:
        raise PermanentlyDenied(f"Message {message_id} is not deletable", result.status, result.body)
    if result.status == 429:
        raise RateLimited(
            f"Rate limited while deleting message {message_id}",
            retry_after=_retry_after(result),
            status=result.status,
            body=result.body,
        )
    raise Transient(f"Failed to delete message {message_id}", result.status, result.body)
