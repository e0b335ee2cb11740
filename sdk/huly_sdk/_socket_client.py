"""
Internal transaction socket for the Huly SDK.

A long-lived websocket used for write transactions. Requests and responses
are correlated by integer id, so several transactions may be in flight at
once and responses may arrive in any order.

State machine:
    DISCONNECTED -> CONNECTING -> AWAITING_HANDSHAKE -> READY -> DISCONNECTED

Invariants:
    - The hello request always uses the reserved id -1
    - Transaction ids are strictly increasing per socket
    - A pending slot is removed exactly once: by its response, by its
      timeout or by disconnect; a late response for a removed slot is dropped
    - Disconnect fails every still-pending slot with ConnectionClosedError

This is an internal module - users should use HulyClient instead.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import aiohttp

from .errors import (
    ConnectionClosedError,
    HulyError,
    NotConnectedError,
    ServerError,
    TimeoutError,
)
from .primitives import generate_id
from .transactions import Tx

logger = logging.getLogger(__name__)

HELLO_ID = -1


class SocketState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_HANDSHAKE = "awaiting_handshake"
    READY = "ready"


@dataclass(frozen=True)
class TransactionResponse:
    """Successful response to a socket request."""

    id: int
    result: Any = None


def socket_url(endpoint: str, session_id: str) -> str:
    """Rewrite an HTTP(S) endpoint to its websocket form with a session id."""
    if endpoint.startswith("https://"):
        url = "wss://" + endpoint[len("https://"):]
    elif endpoint.startswith("http://"):
        url = "ws://" + endpoint[len("http://"):]
    else:
        url = endpoint
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}sessionId={session_id}"


class TransactionSocket:
    """Persistent, id-correlated transaction channel.

    Example:
        >>> sock = TransactionSocket(http, endpoint, token)
        >>> await sock.connect()
        >>> response = await sock.send_transaction(tx)
        >>> await sock.disconnect()

    The aiohttp session is borrowed from the caller and is not closed here.
    """

    def __init__(
        self,
        http: aiohttp.ClientSession,
        endpoint: str,
        token: str,
        *,
        hello_timeout: float = 10.0,
        tx_timeout: float = 30.0,
    ) -> None:
        """Initialize the socket.

        Args:
            http: Session used to open the websocket
            endpoint: Tenant-scoped endpoint (http, https, ws or wss)
            token: Tenant-scoped bearer token
            hello_timeout: Handshake deadline in seconds
            tx_timeout: Per-transaction round-trip deadline in seconds
        """
        self._http = http
        self._endpoint = endpoint
        self._token = token
        self._hello_timeout = hello_timeout
        self._tx_timeout = tx_timeout

        self._state = SocketState.DISCONNECTED
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[TransactionResponse]] = {}
        self._next_id = 0
        self.session_id = ""

    @property
    def state(self) -> SocketState:
        return self._state

    @property
    def connected(self) -> bool:
        """Whether the handshake completed and the transport is still open."""
        return (
            self._state == SocketState.READY
            and self._ws is not None
            and not self._ws.closed
        )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        """Open the transport and complete the hello handshake.

        Raises:
            ConnectionClosedError: Transport could not be opened or closed
                before the handshake completed
            TimeoutError: No hello response within the deadline
            ServerError: Server rejected the hello
        """
        if self._state != SocketState.DISCONNECTED:
            if self.connected:
                return
            await self.disconnect()

        self._state = SocketState.CONNECTING
        self.session_id = generate_id()
        url = socket_url(self._endpoint, self.session_id)
        logger.info(f"Connecting transaction socket (session {self.session_id})")

        try:
            self._ws = await self._http.ws_connect(
                url,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._state = SocketState.DISCONNECTED
            logger.error(f"Failed to open transaction socket: {e!r}")
            raise ConnectionClosedError(f"Failed to open transaction socket: {e!r}") from e

        self._state = SocketState.AWAITING_HANDSHAKE
        hello: asyncio.Future[TransactionResponse] = asyncio.get_running_loop().create_future()
        self._pending[HELLO_ID] = hello
        self._receive_task = asyncio.create_task(self._receive_loop(self._ws))

        try:
            await self._ws.send_str(json.dumps({"method": "hello", "params": [], "id": HELLO_ID}))
            response = await asyncio.wait_for(hello, timeout=self._hello_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"No hello response within {self._hello_timeout}s")
            await self.disconnect()
            raise TimeoutError(
                "Timed out waiting for hello response",
                operation="hello",
                timeout=self._hello_timeout,
            ) from e
        except ConnectionResetError as e:
            await self.disconnect()
            raise ConnectionClosedError("Connection closed during handshake") from e
        except HulyError:
            await self.disconnect()
            raise
        finally:
            self._pending.pop(HELLO_ID, None)

        self._state = SocketState.READY
        logger.info("Transaction socket ready")
        logger.debug(f"Hello result: {response.result!r}")

    async def send_transaction(self, tx: Tx | dict[str, Any]) -> TransactionResponse:
        """Send one transaction and wait for its correlated response.

        Args:
            tx: Transaction record or its wire dict

        Returns:
            The matching response

        Raises:
            NotConnectedError: Socket is not ready; nothing was sent
            ServerError: Response carried an error object
            TimeoutError: No response within the deadline
            ConnectionClosedError: Socket closed before the response arrived
        """
        ws = self._ws
        if ws is None or not self.connected:
            raise NotConnectedError()

        self._next_id += 1
        request_id = self._next_id
        future: asyncio.Future[TransactionResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload = tx if isinstance(tx, dict) else tx.to_dict()
        envelope = {"method": "tx", "params": [payload], "id": request_id}
        logger.debug(
            f"Sending tx {request_id}",
            extra={"tx_class": payload.get("_class"), "object_id": payload.get("objectId")},
        )

        try:
            await ws.send_str(json.dumps(envelope))
            return await asyncio.wait_for(future, timeout=self._tx_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Transaction {request_id} timed out after {self._tx_timeout}s")
            raise TimeoutError(
                f"Timed out waiting for transaction {request_id}",
                operation="tx",
                timeout=self._tx_timeout,
            ) from e
        except ConnectionResetError as e:
            raise ConnectionClosedError(f"Connection closed while sending transaction {request_id}") from e
        finally:
            self._pending.pop(request_id, None)

    async def disconnect(self) -> None:
        """Stop the receive loop, close the transport and fail pending slots."""
        ws, self._ws = self._ws, None
        task, self._receive_task = self._receive_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if ws is not None and not ws.closed:
            await ws.close()

        if self._state != SocketState.DISCONNECTED:
            logger.info("Transaction socket disconnected")
        self._state = SocketState.DISCONNECTED
        self._fail_pending()

    async def __aenter__(self) -> TransactionSocket:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    def _fail_pending(self) -> None:
        pending, self._pending = self._pending, {}
        for request_id, future in pending.items():
            if not future.done():
                future.set_exception(
                    ConnectionClosedError(f"Connection closed before response to request {request_id}")
                )

    async def _receive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._handle_frame(msg.data.decode("utf-8", errors="replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning(f"Transaction socket error: {ws.exception()!r}")
                    break
        finally:
            # Only the loop of the current transport owns the state
            if self._ws is ws:
                logger.info("Transaction socket closed by peer")
                self._state = SocketState.DISCONNECTED
                self._fail_pending()

    def _handle_frame(self, text: str) -> None:
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug(f"Dropping non-JSON frame: {text[:100]!r}")
            return

        request_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            logger.debug(f"Dropping unrecognized frame: {text[:100]!r}")
            return

        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            logger.debug(f"Dropping response for unknown request {request_id}")
            return

        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                code = str(error.get("code", "UNKNOWN"))
                message = str(error.get("message", ""))
            else:
                code, message = "UNKNOWN", str(error)
            logger.warning(f"Request {request_id} rejected: {code} {message}")
            future.set_exception(ServerError(code, message))
        else:
            future.set_result(TransactionResponse(id=request_id, result=data.get("result")))
