"""
Huly client for Python SDK.

This module provides the main client interface:
- HulyClient: Authenticated connection to one Huly workspace
- find_all / find_one: REST queries with typed decoding
- search_fulltext: workspace-wide full-text search
- create_doc / update_doc / remove_doc and collection variants: REST transactions
- send_socket_transaction: writes over the persistent transaction socket

Example:
    >>> config = ClientConfig(email="me@example.com", password="...", workspace="acme")
    >>> async with HulyClient(config) as client:
    ...     spaces = await client.documents.list_teamspaces()
    ...     doc = await client.documents.create_document(spaces[0].name, "Notes", "hello")

Invariants:
    - Every operation ensures authentication before touching the network
    - Decode failures name the offending path (``value[i].field``)
    - Write failures always propagate; nothing is retried
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, TypeVar

from ._rest_client import RestClient
from ._socket_client import TransactionResponse
from .config import ClientConfig
from .documents import DocumentClient
from .errors import InvalidInputError
from .issues import IssueClient
from .models import FindOptions
from .session import Session
from .transactions import TransactionFactory, Tx

logger = logging.getLogger(__name__)

T = TypeVar("T")

Decoder = Callable[[Any, str], T]

MAX_SEARCH_LIMIT = 1000


class HulyClient:
    """Client for one Huly workspace.

    Holds the session (tokens, endpoint, transaction socket) and the HTTP
    transport. Domain operations are grouped under ``documents`` and
    ``issues``.

    Example:
        >>> async with HulyClient(config) as client:
        ...     teamspaces = await client.find_all(
        ...         DocumentClass.TEAMSPACE, {"archived": False},
        ...         FindOptions(limit=50), decoder=Teamspace.from_dict,
        ...     )
    """

    def __init__(self, config: ClientConfig) -> None:
        """Initialize client.

        Args:
            config: Client configuration; nothing is read from the environment here
        """
        self.config = config
        self._rest = RestClient(request_timeout=config.request_timeout)
        self.session = Session(config, self._rest)
        self.documents = DocumentClient(self)
        self.issues = IssueClient(self)

    async def close(self) -> None:
        """Disconnect the socket and close the HTTP session."""
        await self.session.close()
        await self._rest.close()

    async def __aenter__(self) -> HulyClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------

    async def authenticate(self) -> None:
        """Run the three-step authentication, replacing any existing session."""
        await self.session.authenticate()

    async def ensure_authenticated(self) -> None:
        """Authenticate unless a workspace token is already held."""
        await self.session.ensure_authenticated()

    @property
    def account_id(self) -> str | None:
        return self.session.account_id

    @property
    def workspace_id(self) -> str | None:
        return self.session.workspace_id

    def transaction_factory(self) -> TransactionFactory:
        """Factory stamping records with the resolved account id.

        Raises:
            NotAuthenticatedError: If no account id was resolved
        """
        return TransactionFactory(self.session.require_account())

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------

    async def find_all(
        self,
        class_: str,
        query: Mapping[str, Any] | None = None,
        options: FindOptions | None = None,
        *,
        decoder: Decoder[T] | None = None,
    ) -> list[Any]:
        """Find documents of a class.

        Args:
            class_: Class tag (e.g. ``document:class:Teamspace``)
            query: Field filter
            options: Limit/sort/total
            decoder: Callable ``(data, path) -> T``; raw dicts are returned
                when omitted

        Returns:
            Decoded records in server order

        Raises:
            RequestFailedError: Non-200 response
            InvalidResponseError: Body is not JSON
            DecodeError: Body or a record has the wrong shape
        """
        await self.ensure_authenticated()
        endpoint, workspace_id, token = self.session.require()

        raw = await self._rest.find_all(
            endpoint,
            workspace_id,
            token,
            class_,
            dict(query or {}),
            (options or FindOptions()).to_dict(),
        )
        logger.debug(f"find-all {class_} returned {len(raw)} records")

        if decoder is None:
            return raw
        return [decoder(item, f"value[{i}]") for i, item in enumerate(raw)]

    async def find_one(
        self,
        class_: str,
        query: Mapping[str, Any] | None = None,
        options: FindOptions | None = None,
        *,
        decoder: Decoder[T] | None = None,
    ) -> Any | None:
        """Find the first matching document (find_all with limit 1)."""
        options = (options or FindOptions()).with_limit(1)
        results = await self.find_all(class_, query, options, decoder=decoder)
        return results[0] if results else None

    async def search_fulltext(self, query: str, limit: int = 20) -> Any:
        """Full-text search across the workspace.

        Returns:
            The parsed search response

        Raises:
            InvalidInputError: Blank query or limit outside 1..1000
            RequestFailedError: Non-200 response
        """
        if not query.strip():
            raise InvalidInputError("Search query cannot be empty", field_name="query")
        if not 0 < limit <= MAX_SEARCH_LIMIT:
            raise InvalidInputError(
                f"Limit must be between 1 and {MAX_SEARCH_LIMIT} (got {limit})",
                field_name="limit",
            )

        await self.ensure_authenticated()
        endpoint, workspace_id, token = self.session.require()
        return await self._rest.search_fulltext(endpoint, workspace_id, token, query, limit)

    # -------------------------------------------------------------------
    # REST transactions
    # -------------------------------------------------------------------

    async def send_transaction(self, tx: Tx) -> None:
        """Submit a transaction record over REST.

        Raises:
            RequestFailedError: Non-200 response
        """
        await self.ensure_authenticated()
        endpoint, workspace_id, token = self.session.require()
        await self._rest.submit_tx(endpoint, workspace_id, token, tx.to_dict())

    async def create_doc(
        self,
        class_: str,
        space: str,
        attributes: Mapping[str, Any],
        *,
        object_id: str | None = None,
    ) -> str:
        """Create a document and return its id."""
        await self.ensure_authenticated()
        tx = self.transaction_factory().create(class_, space, attributes, object_id=object_id)
        await self.send_transaction(tx)
        return tx.object_id

    async def update_doc(
        self,
        class_: str,
        space: str,
        object_id: str,
        operations: Mapping[str, Any],
    ) -> None:
        """Apply a partial patch to a document."""
        await self.ensure_authenticated()
        tx = self.transaction_factory().update(class_, space, object_id, operations)
        await self.send_transaction(tx)

    async def remove_doc(self, class_: str, space: str, object_id: str) -> None:
        await self.ensure_authenticated()
        tx = self.transaction_factory().remove(class_, space, object_id)
        await self.send_transaction(tx)

    async def add_collection(
        self,
        class_: str,
        space: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
        attributes: Mapping[str, Any],
        *,
        object_id: str | None = None,
    ) -> str:
        """Create a document attached to a parent's collection and return its id."""
        await self.ensure_authenticated()
        tx = self.transaction_factory().create(
            class_,
            space,
            attributes,
            object_id=object_id,
            attached_to=attached_to,
            attached_to_class=attached_to_class,
            collection=collection,
        )
        await self.send_transaction(tx)
        return tx.object_id

    async def update_collection(
        self,
        class_: str,
        space: str,
        object_id: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
        operations: Mapping[str, Any],
    ) -> None:
        """Update a collection member.

        The attachment fields are accepted but the record sent is a plain
        update.
        """
        logger.debug(
            f"update_collection sends a plain update for {object_id}",
            extra={
                "attached_to": attached_to,
                "attached_to_class": attached_to_class,
                "collection": collection,
            },
        )
        await self.update_doc(class_, space, object_id, operations)

    async def remove_collection(
        self,
        class_: str,
        space: str,
        object_id: str,
        attached_to: str,
        attached_to_class: str,
        collection: str,
    ) -> None:
        """Remove a collection member (sent as a plain remove)."""
        logger.debug(
            f"remove_collection sends a plain remove for {object_id}",
            extra={
                "attached_to": attached_to,
                "attached_to_class": attached_to_class,
                "collection": collection,
            },
        )
        await self.remove_doc(class_, space, object_id)

    # -------------------------------------------------------------------
    # Socket transactions
    # -------------------------------------------------------------------

    async def send_socket_transaction(self, tx: Tx) -> TransactionResponse:
        """Send a record over the persistent socket, connecting if needed.

        Raises:
            ConnectionClosedError: Socket could not be opened or closed mid-flight
            TimeoutError: Handshake or round-trip deadline exceeded
            ServerError: Server rejected the transaction
        """
        socket = await self.session.get_socket()
        return await socket.send_transaction(tx)

    # -------------------------------------------------------------------
    # Blobs
    # -------------------------------------------------------------------

    async def upload_blob(self, content: str, filename: str = "content") -> str:
        """Upload text as a blob and return its id."""
        await self.ensure_authenticated()
        endpoint, workspace_id, token = self.session.require()
        return await self._rest.upload_blob(endpoint, workspace_id, token, content, filename)

    async def fetch_blob(self, blob_id: str) -> str | None:
        """Fetch blob text.

        Returns:
            Blob content, or None when the server advertises no files URL

        Raises:
            RequestFailedError: Fetch failed
        """
        await self.ensure_authenticated()
        _, _, token = self.session.require()
        url = self.session.blob_url(blob_id)
        if url is None:
            logger.warning("No FILES_URL configured, cannot fetch blob")
            return None
        logger.debug(f"Fetching blob {blob_id}")
        return await self._rest.fetch_blob(url, token)
