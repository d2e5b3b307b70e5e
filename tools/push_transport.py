"""
Push Transport Tool
Delivers medication reminders through the Expo push notification API
"""

import logging
import re
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import httpx

from config import settings
from errors import DeliveryFailure


logger = logging.getLogger(__name__)


_EXPO_TOKEN_PATTERNS = (
    re.compile(r"^ExponentPushToken\[.+\]$"),
    re.compile(r"^ExpoPushToken\[.+\]$"),
    re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE),
)


def is_push_token(token: Optional[str]) -> bool:
    """Check whether a device token has a shape the push service accepts"""
    if not token:
        return False
    return any(pattern.match(token) for pattern in _EXPO_TOKEN_PATTERNS)


@dataclass
class PushMessage:
    """A single push message addressed to one device"""
    to: str
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    sound: str = "default"
    priority: str = "high"
    category_id: Optional[str] = "medication_reminder"

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "sound": self.sound,
            "priority": self.priority,
        }
        if self.category_id:
            payload["categoryId"] = self.category_id
        return payload


@dataclass
class PushTicket:
    """Per-message delivery outcome returned by the transport"""
    status: str
    id: Optional[str] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def error(cls, message: str) -> "PushTicket":
        return cls(status="error", message=message)


class PushTransport:
    """
    Capability that accepts a batch of push messages and returns one ticket
    per message, in order. Callers chunk to `max_batch_size`.
    """

    max_batch_size: int = 100

    async def send(self, messages: List[PushMessage]) -> List[PushTicket]:
        raise NotImplementedError

    def chunk(self, messages: List[PushMessage]) -> List[List[PushMessage]]:
        size = max(1, self.max_batch_size)
        return [messages[i:i + size] for i in range(0, len(messages), size)]

    async def close(self):
        return None


class ExpoPushTransport(PushTransport):
    """
    Client for the Expo push API

    API Documentation: https://docs.expo.dev/push-notifications/sending-notifications/
    """

    def __init__(
        self,
        url: Optional[str] = None,
        access_token: Optional[str] = None,
        max_batch_size: Optional[int] = None,
        timeout: Optional[float] = None
    ):
        self.url = url or settings.EXPO_PUSH_URL
        self.access_token = access_token or settings.EXPO_ACCESS_TOKEN
        self.max_batch_size = max_batch_size or settings.PUSH_MAX_BATCH_SIZE
        self.timeout = timeout or settings.PUSH_TIMEOUT_SECONDS
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            headers = {
                "Accept": "application/json",
                "Accept-Encoding": "gzip, deflate",
                "Content-Type": "application/json",
            }
            if self.access_token:
                headers["Authorization"] = f"Bearer {self.access_token}"

            self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)

        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(self, messages: List[PushMessage]) -> List[PushTicket]:
        """
        Send one batch of messages

        Raises:
            DeliveryFailure: the whole batch was rejected or the response
                could not be matched to the messages
        """
        if not messages:
            return []
        if len(messages) > self.max_batch_size:
            raise DeliveryFailure(
                f"Batch of {len(messages)} exceeds the limit of {self.max_batch_size}"
            )

        client = await self._get_client()
        try:
            response = await client.post(self.url, json=[m.to_payload() for m in messages])
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Push API returned {e.response.status_code}: {e.response.text[:200]}")
            raise DeliveryFailure(f"Push API error {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Push API request failed: {e}")
            raise DeliveryFailure(f"Push API unreachable: {e}") from e
        except ValueError as e:
            raise DeliveryFailure("Push API returned invalid JSON") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list) or len(data) != len(messages):
            raise DeliveryFailure("Push API response does not match the request")

        return [
            PushTicket(
                status=item.get("status", "error"),
                id=item.get("id"),
                message=item.get("message"),
                details=item.get("details") or {},
            )
            for item in data
        ]
