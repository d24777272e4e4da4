"""Chat Client - live channel consumer for one open conversation

Used by integration tooling and by any Python consumer of the chat API:

    client = ChatClient("http://localhost:8000", token, user_id, counterparty_id)
    await client.load_history()
    task = asyncio.create_task(client.run())
    await client.send("Is the flat still available?")

Behaviour:
    - joins the user's room with `add-user` after every (re)connect
    - keeps only messages of the open pair (and conversation, once known)
    - drops any message id it already holds, so REST echoes and socket
      events for the same message merge into one entry
    - reconnects with exponential backoff and resyncs via history after the
      last known message id
"""

import asyncio
import json
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from realty_api.schemas.socket import ClientEvent, ServerEvent
from realty_api.utils.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class ReconnectPolicy:
    """Exponential backoff: base_delay * factor**attempt, capped at max_delay

    jitter is the fraction (0..1) of the delay that may be randomly shaved off.
    max_attempts=None retries forever.
    """

    base_delay: float = 0.5
    factor: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.0
    max_attempts: int | None = None

    def delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        delay = min(self.max_delay, self.base_delay * self.factor**attempt)
        if self.jitter:
            delay -= delay * self.jitter * rand()
        return delay

    def exhausted(self, attempt: int) -> bool:
        return self.max_attempts is not None and attempt >= self.max_attempts


class MessageBuffer:
    """Ordered, de-duplicated messages of one conversation pair"""

    def __init__(self, user_id: str, counterparty_id: str, conversation_id: str | None = None):
        self.pair = {str(user_id), str(counterparty_id)}
        self.conversation_id = conversation_id
        self.messages: list[dict[str, Any]] = []
        self._seen: set[str] = set()

    def belongs(self, message: dict[str, Any]) -> bool:
        if {str(message.get("senderId")), str(message.get("receiverId"))} != self.pair:
            return False
        if self.conversation_id and message.get("conversationId") != self.conversation_id:
            return False
        return True

    def add(self, message: dict[str, Any]) -> bool:
        """Append a message; False when it is foreign or already held"""
        message_id = message.get("id")
        if not message_id or message_id in self._seen or not self.belongs(message):
            return False
        if self.conversation_id is None:
            self.conversation_id = message.get("conversationId")
        self._seen.add(message_id)
        self.messages.append(message)
        # ISO-8601 UTC timestamps sort lexically
        self.messages.sort(key=lambda item: (item.get("createdAt") or "", item["id"]))
        return True

    def extend(self, messages: list[dict[str, Any]]) -> int:
        return sum(1 for message in messages if self.add(message))

    @property
    def last_id(self) -> str | None:
        return self.messages[-1]["id"] if self.messages else None

    def __len__(self) -> int:
        return len(self.messages)


def websocket_url(base_url: str, token: str) -> str:
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}/ws/chat?token={token}"


class ChatClient:
    """REST + live channel client for the conversation with one counterparty"""

    def __init__(
        self,
        base_url: str,
        token: str,
        user_id: str,
        counterparty_id: str,
        property_id: str | None = None,
        policy: ReconnectPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        connect: Callable[..., Any] = websockets.connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        timeout: float = 10.0,
        page_size: int = 100,
        on_message: Callable[[dict[str, Any]], Any] | None = None,
        on_notification: Callable[[dict[str, Any]], Any] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user_id = str(user_id)
        self.counterparty_id = str(counterparty_id)
        self.property_id = property_id
        self.policy = policy or ReconnectPolicy()
        self.page_size = page_size
        self.http = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._owns_http = http_client is None
        self._connect = connect
        self._sleep = sleep
        self.on_message = on_message
        self.on_notification = on_notification
        self.buffer = MessageBuffer(self.user_id, self.counterparty_id)
        self.connected = asyncio.Event()
        self.reconnects = 0
        self._stopped = False

    @property
    def messages(self) -> list[dict[str, Any]]:
        return self.buffer.messages

    # REST

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            response = await self.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise UpstreamError(
                f"{method} {path} returned {response.status_code}: {body.get('error', response.text)}",
                code=body.get("code"),
            )
        return response.json().get("data")

    async def fetch_history(self, after_id: str | None = None) -> list[dict[str, Any]]:
        params = {"limit": self.page_size}
        if self.property_id:
            params["propertyId"] = self.property_id
        if after_id:
            params["after"] = after_id
        return await self._request("GET", f"/api/chatting/{self.counterparty_id}", params=params) or []

    async def load_history(self) -> int:
        """Initial history load; returns the number of messages added"""
        return self.buffer.extend(await self.fetch_history())

    async def resync(self) -> int:
        """Fetch what was missed while disconnected, page by page until caught up"""
        added = 0
        anchor = self.buffer.last_id
        while True:
            page = await self.fetch_history(after_id=anchor)
            added += self.buffer.extend(page)
            if len(page) < self.page_size or page[-1]["id"] == anchor:
                break
            anchor = page[-1]["id"]
        if added:
            logger.info(f"Resync added {added} messages")
        return added

    async def send(self, text: str) -> dict[str, Any]:
        """Send over REST; the persisted message goes through the dedupe path"""
        body = {"receiverId": self.counterparty_id, "text": text}
        if self.property_id:
            body["propertyId"] = self.property_id
        message = await self._request("POST", "/api/chatting", json=body)
        self.buffer.add(message)
        return message

    # Live channel

    async def handle_frame(self, raw: str | bytes | dict[str, Any]) -> None:
        data = raw if isinstance(raw, dict) else json.loads(raw)
        event = data.get("event")
        payload = data.get("data") or {}

        if event == ServerEvent.RECEIVE_MESSAGE.value:
            if self.buffer.add(payload) and self.on_message:
                await _maybe_await(self.on_message(payload))
        elif event == ServerEvent.NEW_NOTIFICATION.value:
            if self.on_notification:
                await _maybe_await(self.on_notification(payload))
        elif event == ServerEvent.JOINED.value:
            self.connected.set()
        elif event == ServerEvent.ERROR.value:
            logger.warning(f"Server error event: {payload.get('code')} {payload.get('error')}")

    async def run(self) -> None:
        """Keep the live channel open until stop() is called

        The backoff counter resets whenever a connection was established.

        Raises:
            UpstreamError: the handshake was rejected or the reconnect policy gave up
        """
        attempt = 0
        first = True
        while not self._stopped:
            try:
                async with self._connect(websocket_url(self.base_url, self.token), close_timeout=10) as ws:
                    attempt = 0
                    await ws.send(json.dumps({"event": ClientEvent.ADD_USER.value, "data": {"userId": self.user_id}}))
                    if not first:
                        await self.resync()
                    async for raw in ws:
                        await self.handle_frame(raw)
                logger.info("Live channel closed by server")
            except InvalidHandshake as e:
                raise UpstreamError(f"Live channel handshake rejected: {e}") from e
            except (ConnectionClosed, OSError, UpstreamError) as e:
                logger.warning(f"Live channel dropped: {e}")
            finally:
                self.connected.clear()

            if self._stopped:
                break
            if self.policy.exhausted(attempt):
                raise UpstreamError(f"Live channel unavailable after {attempt} reconnect attempts")

            delay = self.policy.delay(attempt)
            attempt += 1
            first = False
            self.reconnects += 1
            logger.info(f"Reconnecting in {delay:.2f}s (attempt {attempt})")
            await self._sleep(delay)

    def stop(self) -> None:
        self._stopped = True

    async def close(self) -> None:
        self.stop()
        if self._owns_http:
            await self.http.aclose()


async def _maybe_await(result: Any) -> None:
    if asyncio.iscoroutine(result):
        await result
