"""
Internal REST client for the Huly SDK.

This module provides the low-level HTTP layer: server discovery, account
RPC calls, find queries, transaction submission and blob transfer.
It is internal to the SDK and should not be used directly by users.

Users should use HulyClient instead, which provides a clean Python API.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from .errors import (
    ConfigError,
    DecodeError,
    InvalidResponseError,
    RequestFailedError,
)

logger = logging.getLogger(__name__)

# Response bodies are truncated to this length in errors and logs
BODY_PREVIEW = 1000


@dataclass(frozen=True)
class ServerConfig:
    """Endpoints discovered from ``{base_url}/config.json``."""

    accounts_url: str
    files_url: str | None = None
    upload_url: str | None = None
    collaborator_url: str | None = None


def looks_like_json(text: str) -> bool:
    """Whether the first non-whitespace character opens an object or array."""
    stripped = text.lstrip()
    return stripped[:1] in ("{", "[")


def parse_json(text: str, what: str) -> Any:
    """Parse a JSON body, refusing anything that is not an object or array."""
    if not looks_like_json(text):
        logger.error(f"{what} response is not JSON: {text[:200]!r}")
        raise InvalidResponseError(f"{what} response is not JSON")
    try:
        return json.loads(text)
    except ValueError as e:
        raise InvalidResponseError(f"{what} response is malformed JSON: {e}") from e


class RestClient:
    """Internal HTTP client for the platform.

    Owns one aiohttp ClientSession for the lifetime of the client. All
    methods are stateless with respect to authentication: tokens and
    endpoints are passed in by the caller.

    This is an internal class - users should use HulyClient instead.
    """

    def __init__(self, request_timeout: float = 30.0) -> None:
        """Initialize the REST client.

        Args:
            request_timeout: Total timeout per HTTP request in seconds
        """
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Shared HTTP session (created on first use)."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")
        self._session = None

    @staticmethod
    def _auth_headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> tuple[int, str]:
        """Perform a request and return (status, body text).

        Raises:
            RequestFailedError: If the request could not be completed
        """
        try:
            async with self.session.request(method, url, **kwargs) as resp:
                return resp.status, await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP {method} {url} failed: {e!r}")
            raise RequestFailedError(f"{method} {url} failed: {e!r}") from e

    async def get_server_config(self, base_url: str) -> ServerConfig:
        """Fetch ``config.json`` and extract the service endpoints.

        Raises:
            ConfigError: On non-200 status, malformed JSON or missing ACCOUNTS_URL
        """
        url = f"{base_url}/config.json"
        try:
            status, text = await self._request("GET", url)
        except RequestFailedError as e:
            raise ConfigError(f"Failed to fetch server config: {e.message}", url=url) from e

        logger.debug(f"Config response received: status={status}", extra={"url": url})

        if status != 200:
            raise ConfigError(
                f"Failed to fetch server config (status {status}): {text[:200]}",
                url=url,
            )

        try:
            data = parse_json(text, "config.json")
        except InvalidResponseError as e:
            raise ConfigError(f"Malformed server config: {e.message}", url=url) from e

        if not isinstance(data, dict) or not isinstance(data.get("ACCOUNTS_URL"), str):
            raise ConfigError("Server config has no ACCOUNTS_URL", url=url)

        def _opt(key: str) -> str | None:
            value = data.get(key)
            return value if isinstance(value, str) and value else None

        return ServerConfig(
            accounts_url=data["ACCOUNTS_URL"],
            files_url=_opt("FILES_URL"),
            upload_url=_opt("UPLOAD_URL"),
            collaborator_url=_opt("COLLABORATOR_URL"),
        )

    async def rpc(
        self,
        url: str,
        method: str,
        params: dict[str, Any],
        token: str | None = None,
    ) -> tuple[int, Any]:
        """Call a JSON-RPC style account method.

        Returns:
            Tuple of (status, parsed body or None if the body is not JSON)
        """
        headers = self._auth_headers(token) if token else {}
        status, text = await self._request(
            "POST",
            url,
            json={"method": method, "params": params},
            headers=headers,
        )
        if not looks_like_json(text):
            return status, None
        try:
            return status, json.loads(text)
        except ValueError:
            return status, None

    async def find_all(
        self,
        endpoint: str,
        workspace_id: str,
        token: str,
        class_: str,
        query: dict[str, Any],
        options: dict[str, Any],
    ) -> list[Any]:
        """Run a find-all query and return the raw ``value`` array.

        Raises:
            RequestFailedError: Non-200 status (body attached)
            InvalidResponseError: Body is not JSON
            DecodeError: Body has no ``value`` array
        """
        url = f"{endpoint}/api/v1/find-all/{workspace_id}"
        body = {"_class": class_, "query": query, "options": options}
        status, text = await self._request(
            "POST", url, json=body, headers=self._auth_headers(token)
        )

        logger.debug(
            f"find-all {class_}: status={status}",
            extra={"url": url, "response_preview": text[:500]},
        )

        if status != 200:
            logger.error(f"Find query failed with status {status}: {text[:BODY_PREVIEW]}")
            raise RequestFailedError(
                f"Find query failed with status {status}: {text[:200]}",
                status=status,
                body=text[:BODY_PREVIEW],
            )

        data = parse_json(text, "find-all")
        if not isinstance(data, dict):
            raise DecodeError("Expected object", "$")
        if "value" not in data:
            raise DecodeError("Missing required field", "value")
        if not isinstance(data["value"], list):
            raise DecodeError("Expected array", "value")
        return data["value"]

    async def submit_tx(
        self,
        endpoint: str,
        workspace_id: str,
        token: str,
        tx: dict[str, Any],
    ) -> None:
        """POST a transaction record.

        Raises:
            RequestFailedError: Non-200 status
        """
        url = f"{endpoint}/api/v1/tx/{workspace_id}"
        logger.info(
            f"Sending transaction {tx.get('_class')} for {tx.get('objectClass')}",
            extra={"url": url, "object_id": tx.get("objectId")},
        )
        status, text = await self._request(
            "POST", url, json=tx, headers=self._auth_headers(token)
        )
        if status != 200:
            logger.error(f"Transaction failed (status {status}): {text[:500]}")
            raise RequestFailedError(
                f"Transaction failed (status {status}): {text[:200]}",
                status=status,
                body=text[:BODY_PREVIEW],
            )

    async def search_fulltext(
        self,
        endpoint: str,
        workspace_id: str,
        token: str,
        query: str,
        limit: int,
    ) -> Any:
        """Run a full-text search and return the parsed response.

        Raises:
            RequestFailedError: Non-200 status
            InvalidResponseError: Body is not JSON
        """
        url = f"{endpoint}/api/v1/search-fulltext/{workspace_id}"
        body = {"query": query, "options": {"limit": limit}}
        status, text = await self._request(
            "POST", url, json=body, headers=self._auth_headers(token)
        )
        logger.debug(f"search-fulltext: status={status}", extra={"url": url})

        if status != 200:
            logger.error(f"Search failed with status {status}: {text[:BODY_PREVIEW]}")
            raise RequestFailedError(
                f"Search failed with status {status}: {text[:200]}",
                status=status,
                body=text[:BODY_PREVIEW],
            )
        return parse_json(text, "search-fulltext")

    async def upload_blob(
        self,
        endpoint: str,
        workspace_id: str,
        token: str,
        content: str,
        filename: str = "content",
    ) -> str:
        """Upload text as a blob (multipart) and return the blob id.

        The server answers with ``{"id": ...}``, ``[{"id": ...}]`` or the
        bare id.

        Raises:
            RequestFailedError: Non-200 status
            InvalidResponseError: No blob id in the response
        """
        url = f"{endpoint}/files"
        form = aiohttp.FormData()
        form.add_field("workspace", workspace_id)
        form.add_field(
            "file",
            content.encode("utf-8"),
            filename=filename,
            content_type="text/plain",
        )
        status, text = await self._request(
            "POST",
            url,
            params={"space": workspace_id},
            data=form,
            headers=self._auth_headers(token),
        )
        logger.debug(f"Upload response status {status}")
        if status != 200:
            raise RequestFailedError(
                f"Failed to upload blob: {text[:200]}",
                status=status,
                body=text[:BODY_PREVIEW],
            )

        blob_id = self._extract_blob_id(text)
        if not blob_id:
            raise InvalidResponseError("Upload response did not contain a blob id")
        logger.debug(f"Blob uploaded: {blob_id}")
        return blob_id

    @staticmethod
    def _extract_blob_id(text: str) -> str | None:
        if looks_like_json(text):
            try:
                data = json.loads(text)
            except ValueError:
                data = None
            if isinstance(data, list) and data:
                data = data[0]
            if isinstance(data, dict):
                blob_id = data.get("id")
                return blob_id if isinstance(blob_id, str) and blob_id else None
        blob_id = text.strip().strip('"')
        return blob_id or None

    async def fetch_blob(self, url: str, token: str) -> str:
        """GET blob content as text.

        Raises:
            RequestFailedError: Non-200 status or transport failure
        """
        status, text = await self._request("GET", url, headers=self._auth_headers(token))
        if status != 200:
            raise RequestFailedError(
                f"Failed to fetch blob (status {status})",
                status=status,
                body=text[:200],
            )
        return text
