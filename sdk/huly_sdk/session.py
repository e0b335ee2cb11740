"""
Session and authentication state.

Authentication is a three-step sequence:
1. GET ``{base_url}/config.json`` to discover the account service
2. ``login`` RPC with email/password -> account token
3. ``selectWorkspace`` RPC with the account token -> workspace token,
   workspace id and workspace endpoint

Invariants:
    - All mutable state (tokens, ids, endpoints, socket) is owned by Session
      and only changes under its locks
    - Concurrent ensure_authenticated() callers authenticate at most once
    - State is stored only after all three steps succeed
    - The workspace endpoint is always stored with an http(s) scheme
    - There is no token refresh; a rejected token surfaces as RequestFailedError
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

from ._rest_client import RestClient
from ._socket_client import TransactionSocket
from .config import ClientConfig
from .errors import AuthenticationError, NotAuthenticatedError

logger = logging.getLogger(__name__)


def http_endpoint(endpoint: str) -> str:
    """Normalize an advertised endpoint to its HTTP(S) form."""
    endpoint = endpoint.rstrip("/")
    if endpoint.startswith("wss://"):
        return "https://" + endpoint[len("wss://"):]
    if endpoint.startswith("ws://"):
        return "http://" + endpoint[len("ws://"):]
    return endpoint


def _rpc_error_code(body: Any) -> str | None:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            code = error.get("code")
            return str(code) if code is not None else None
        if error is not None:
            return str(error)
    return None


def _rpc_result(body: Any) -> dict[str, Any] | None:
    if isinstance(body, dict) and isinstance(body.get("result"), dict):
        return body["result"]
    return None


class Session:
    """Authenticated session bound to one workspace.

    Attributes:
        base_url: Normalized platform base URL
        accounts_url: Discovered account-service URL
        files_url: Discovered blob URL template (may be None)
        token: Account-level bearer token
        workspace_token: Workspace-scoped bearer token
        endpoint: Workspace-scoped HTTP(S) endpoint
        account_id: Resolved account id
        workspace_id: Resolved workspace id
    """

    def __init__(self, config: ClientConfig, rest: RestClient) -> None:
        self._config = config
        self._rest = rest

        self.base_url: str | None = None
        self.accounts_url: str | None = None
        self.files_url: str | None = None
        self.token: str | None = None
        self.workspace_token: str | None = None
        self.endpoint: str | None = None
        self.account_id: str | None = None
        self.workspace_id: str | None = None
        self.socket: TransactionSocket | None = None

        self._auth_lock = asyncio.Lock()
        self._socket_lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self.workspace_token is not None

    async def authenticate(self) -> None:
        """Run the full three-step authentication.

        Raises:
            InvalidURLError: Base URL has an unsupported scheme
            ConfigError: Server discovery failed
            AuthenticationError: Login or workspace selection was rejected
            RequestFailedError: Account service could not be reached
        """
        async with self._auth_lock:
            await self._authenticate()

    async def ensure_authenticated(self) -> None:
        """Authenticate only if no workspace token is held."""
        if self.workspace_token is not None:
            return
        async with self._auth_lock:
            if self.workspace_token is not None:
                return
            await self._authenticate()

    async def _authenticate(self) -> None:
        base_url = self._config.normalized_base_url
        logger.info(f"Authenticating against {base_url}")

        server = await self._rest.get_server_config(base_url)
        logger.debug(
            "Server config discovered",
            extra={"accounts_url": server.accounts_url, "files_url": server.files_url},
        )

        # Step 2: login
        status, body = await self._rest.rpc(
            server.accounts_url,
            "login",
            {"email": self._config.email, "password": self._config.password},
        )
        login = _rpc_result(body)
        if status != 200 or login is None or not isinstance(login.get("token"), str):
            server_code = _rpc_error_code(body)
            logger.error(f"Login failed (status {status}, code {server_code})")
            raise AuthenticationError(
                f"Login failed: {server_code or f'status {status}'}",
                step="login",
                server_code=server_code,
            )
        account_token = login["token"]
        logger.info("Login successful")

        # Step 3: select workspace
        status, body = await self._rest.rpc(
            server.accounts_url,
            "selectWorkspace",
            {"workspaceUrl": self._config.workspace, "kind": "external"},
            token=account_token,
        )
        selected = _rpc_result(body)
        if (
            status != 200
            or selected is None
            or not isinstance(selected.get("token"), str)
            or not isinstance(selected.get("endpoint"), str)
            or not isinstance(selected.get("workspace"), str)
        ):
            server_code = _rpc_error_code(body)
            logger.error(
                f"Workspace selection failed (status {status}, code {server_code})",
                extra={"workspace": self._config.workspace},
            )
            raise AuthenticationError(
                f"Failed to select workspace {self._config.workspace!r}: "
                f"{server_code or f'status {status}'}",
                step="selectWorkspace",
                server_code=server_code,
            )

        account_id = login.get("account") or selected.get("account")
        if self.socket is not None:
            await self.socket.disconnect()
            self.socket = None

        self.base_url = base_url
        self.accounts_url = server.accounts_url
        self.files_url = server.files_url
        self.token = account_token
        self.workspace_token = selected["token"]
        self.endpoint = http_endpoint(selected["endpoint"])
        self.workspace_id = selected["workspace"]
        self.account_id = str(account_id) if account_id else None

        logger.info(
            "Workspace selected",
            extra={"workspace_id": self.workspace_id, "endpoint": self.endpoint},
        )

    def require(self) -> tuple[str, str, str]:
        """Return (endpoint, workspace_id, workspace_token).

        Raises:
            NotAuthenticatedError: If the session is not established
        """
        if self.endpoint is None or self.workspace_id is None or self.workspace_token is None:
            raise NotAuthenticatedError()
        return self.endpoint, self.workspace_id, self.workspace_token

    def require_account(self) -> str:
        """Return the resolved account id.

        Raises:
            NotAuthenticatedError: If no account id was resolved
        """
        if not self.account_id:
            raise NotAuthenticatedError("Not authenticated: no account id resolved")
        return self.account_id

    def blob_url(self, blob_id: str) -> str | None:
        """Substitute workspace and blob id into the files URL template."""
        if not self.files_url or self.workspace_id is None:
            return None
        quoted = quote(blob_id, safe="")
        url = (
            self.files_url.replace(":workspace", self.workspace_id)
            .replace(":filename", quoted)
            .replace(":blobId", quoted)
        )
        if url.startswith(("http://", "https://")):
            return url
        if not url.startswith("/"):
            url = "/" + url
        return f"{self.base_url}{url}"

    async def get_socket(self) -> TransactionSocket:
        """Return a ready transaction socket, creating one if needed.

        Raises:
            ConnectionClosedError: Socket could not be opened
            TimeoutError: Handshake timed out
        """
        await self.ensure_authenticated()
        async with self._socket_lock:
            if self.socket is not None and self.socket.connected:
                return self.socket
            if self.socket is not None:
                logger.info("Transaction socket lost, reconnecting")
                await self.socket.disconnect()
                self.socket = None

            endpoint, _, token = self.require()
            socket = TransactionSocket(
                self._rest.session,
                endpoint,
                token,
                hello_timeout=self._config.hello_timeout,
                tx_timeout=self._config.tx_timeout,
            )
            await socket.connect()
            self.socket = socket
            return socket

    async def close(self) -> None:
        """Disconnect the socket and clear all credentials."""
        async with self._socket_lock:
            if self.socket is not None:
                await self.socket.disconnect()
                self.socket = None
        self.token = None
        self.workspace_token = None
        self.endpoint = None
        self.account_id = None
        self.workspace_id = None
