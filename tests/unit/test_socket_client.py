"""
Unit tests for the transaction socket protocol.

Runs TransactionSocket against the fake platform's websocket.

Tests cover:
- Hello handshake and state transitions
- Id correlation with out-of-order responses
- Server-reported errors
- Disconnect and peer close with pending requests
- Handshake and transaction timeouts
- Dropping of unrecognized frames
"""

import asyncio

import pytest

from huly_sdk._socket_client import SocketState, TransactionSocket, socket_url
from huly_sdk.errors import (
    ConnectionClosedError,
    NotConnectedError,
    ServerError,
    TimeoutError,
)
from huly_sdk.transactions import TransactionFactory
from tests.fake_platform import WORKSPACE_TOKEN


async def wait_until(predicate, timeout=1.0):
    """Poll until predicate() is true."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.fixture
def factory():
    """Transaction factory for a fixed account."""
    return TransactionFactory(user_id="account-1")


@pytest.fixture
def make_socket(platform, http):
    """Build sockets bound to the fake platform."""

    def _make(hello_timeout=1.0, tx_timeout=2.0):
        return TransactionSocket(
            http,
            platform.base_url,
            WORKSPACE_TOKEN,
            hello_timeout=hello_timeout,
            tx_timeout=tx_timeout,
        )

    return _make


class TestSocketUrl:
    """Tests for socket URL rewriting."""

    def test_https_becomes_wss(self):
        """Secure endpoints use wss."""
        assert socket_url("https://huly.io/ws", "s1") == "wss://huly.io/ws?sessionId=s1"

    def test_http_becomes_ws(self):
        """Plain endpoints use ws."""
        assert socket_url("http://localhost:8080", "s1") == "ws://localhost:8080?sessionId=s1"

    def test_existing_query(self):
        """Session id is appended to an existing query."""
        assert socket_url("wss://huly.io/?a=1", "s1") == "wss://huly.io/?a=1&sessionId=s1"


class TestHandshake:
    """Tests for connect()."""

    @pytest.mark.asyncio
    async def test_connect_reaches_ready(self, make_socket, platform):
        """Hello round-trip moves the socket to READY."""
        sock = make_socket()
        assert sock.state == SocketState.DISCONNECTED

        await sock.connect()
        try:
            assert sock.state == SocketState.READY
            assert sock.connected
            assert platform.socket_requests[0]["session_id"] == sock.session_id
            assert platform.socket_requests[0]["authorization"] == f"Bearer {WORKSPACE_TOKEN}"
        finally:
            await sock.disconnect()

        assert sock.state == SocketState.DISCONNECTED
        assert not sock.connected

    @pytest.mark.asyncio
    async def test_late_hello_does_not_mark_ready(self, make_socket, platform):
        """A hello after the deadline fails connect and is ignored."""
        platform.hello_delay = 0.3
        sock = make_socket(hello_timeout=0.1)

        with pytest.raises(TimeoutError) as exc_info:
            await sock.connect()

        assert exc_info.value.operation == "hello"
        await asyncio.sleep(0.4)
        assert sock.state == SocketState.DISCONNECTED
        assert not sock.connected

    @pytest.mark.asyncio
    async def test_missing_hello_times_out(self, make_socket, platform):
        """No hello at all is a timeout."""
        platform.send_hello = False
        sock = make_socket(hello_timeout=0.1)

        with pytest.raises(TimeoutError):
            await sock.connect()
        assert sock.pending_count == 0

    @pytest.mark.asyncio
    async def test_refused_upgrade_is_connection_closed(self, make_socket, platform):
        """A refused websocket upgrade surfaces as ConnectionClosedError."""
        platform.socket_enabled = False
        sock = make_socket()

        with pytest.raises(ConnectionClosedError):
            await sock.connect()
        assert sock.state == SocketState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_async_context_manager(self, make_socket):
        """async with connects and disconnects."""
        async with make_socket() as sock:
            assert sock.connected
        assert not sock.connected


class TestSendTransaction:
    """Tests for send_transaction()."""

    @pytest.mark.asyncio
    async def test_requires_ready(self, make_socket, factory):
        """Sending before connect fails without sending."""
        sock = make_socket()

        with pytest.raises(NotConnectedError):
            await sock.send_transaction(factory.create("c", "s", {}))

    @pytest.mark.asyncio
    async def test_send_after_disconnect(self, make_socket, factory, platform):
        """A disconnected socket refuses to send and allocates no slot."""
        sock = make_socket()
        await sock.connect()
        await sock.disconnect()

        with pytest.raises(NotConnectedError):
            await sock.send_transaction(factory.create("c", "s", {}))
        assert sock.pending_count == 0
        assert platform.socket_txs == []

    @pytest.mark.asyncio
    async def test_round_trip(self, make_socket, factory, platform):
        """Response is matched to its request."""
        async with make_socket() as sock:
            tx = factory.create("c", "s", {"title": "x"})
            response = await sock.send_transaction(tx)

        assert response.id == 1
        assert response.result == {"objectId": tx.object_id}
        assert platform.socket_txs[0]["objectId"] == tx.object_id

    @pytest.mark.asyncio
    async def test_ids_strictly_increase(self, make_socket, factory):
        """Each request gets a new id."""
        async with make_socket() as sock:
            first = await sock.send_transaction(factory.create("c", "s", {}))
            second = await sock.send_transaction(factory.create("c", "s", {}))

        assert second.id == first.id + 1

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self, make_socket, factory, platform):
        """Responses answered in reverse order reach the right callers."""
        platform.reverse_batch = 2

        async with make_socket() as sock:
            tx_a = factory.create("c", "s", {"n": 1})
            tx_b = factory.create("c", "s", {"n": 2})
            result_a, result_b = await asyncio.gather(
                sock.send_transaction(tx_a),
                sock.send_transaction(tx_b),
            )

        assert result_a.result == {"objectId": tx_a.object_id}
        assert result_b.result == {"objectId": tx_b.object_id}
        assert result_b.id == result_a.id + 1

    @pytest.mark.asyncio
    async def test_server_error(self, make_socket, factory, platform):
        """Error responses raise ServerError with the same code and message."""
        platform.tx_error = {"code": "platform:status:Forbidden", "message": "denied"}

        async with make_socket() as sock:
            with pytest.raises(ServerError) as exc_info:
                await sock.send_transaction(factory.create("c", "s", {}))
            assert sock.pending_count == 0

        assert exc_info.value.server_code == "platform:status:Forbidden"
        assert exc_info.value.server_message == "denied"

    @pytest.mark.asyncio
    async def test_disconnect_fails_pending(self, make_socket, factory, platform):
        """Disconnect fails in-flight requests with ConnectionClosedError."""
        platform.answer_transactions = False
        sock = make_socket()
        await sock.connect()

        pending = asyncio.create_task(sock.send_transaction(factory.create("c", "s", {})))
        await wait_until(lambda: len(platform.socket_txs) == 1)
        await sock.disconnect()

        with pytest.raises(ConnectionClosedError):
            await pending
        assert sock.pending_count == 0

    @pytest.mark.asyncio
    async def test_peer_close_fails_pending(self, make_socket, factory, platform):
        """Server closing the socket fails in-flight requests."""
        platform.answer_transactions = False
        sock = make_socket()
        await sock.connect()

        pending = asyncio.create_task(sock.send_transaction(factory.create("c", "s", {})))
        await wait_until(lambda: len(platform.socket_txs) == 1)
        await platform.close_sockets()

        with pytest.raises(ConnectionClosedError):
            await pending
        assert sock.state == SocketState.DISCONNECTED
        await sock.disconnect()

    @pytest.mark.asyncio
    async def test_transaction_timeout(self, make_socket, factory, platform):
        """Unanswered transactions time out and free their slot."""
        platform.answer_transactions = False

        async with make_socket(tx_timeout=0.1) as sock:
            with pytest.raises(TimeoutError) as exc_info:
                await sock.send_transaction(factory.create("c", "s", {}))

            assert exc_info.value.operation == "tx"
            assert sock.pending_count == 0
            assert sock.connected

    @pytest.mark.asyncio
    async def test_unrecognized_frames_dropped(self, make_socket, factory, platform):
        """Junk and unknown-id frames do not disturb correlation."""
        platform.extra_frames = ["not json", '{"id": 999, "result": {}}', '{"hello": true}', '"ping"']

        async with make_socket() as sock:
            tx = factory.create("c", "s", {})
            response = await sock.send_transaction(tx)

        assert response.result == {"objectId": tx.object_id}
