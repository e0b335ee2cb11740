"""
Teamspace and document operations with blob-aware content.

Content at or above the configured threshold (10,240 UTF-8 bytes by default)
is uploaded as a blob and only the blob id is stored in ``content``. Read
paths swap a blob reference for the real text.

Writes go over the persistent transaction socket. If the socket cannot be
established the same record is submitted over REST instead; once a record
has been sent over the socket, any failure is final.

Invariants:
    - A failed read-side blob fetch returns the document with its raw
      reference; it never raises
    - Write-side failures (upload, socket, REST) always propagate
    - Create and update return the document as re-read from the server
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .errors import (
    ConnectionClosedError,
    HulyError,
    NotConnectedError,
    NotFoundError,
    RequestFailedError,
    TimeoutError,
)
from .models import Attachment, Document, FindOptions, SortingOrder, Teamspace
from .primitives import ATTACHMENT, DocumentClass
from .transactions import Tx

if TYPE_CHECKING:
    from .client import HulyClient

logger = logging.getLogger(__name__)


class DocumentClient:
    """Document operations bound to a HulyClient."""

    def __init__(self, client: HulyClient) -> None:
        self._client = client

    # -------------------------------------------------------------------
    # Teamspaces
    # -------------------------------------------------------------------

    async def list_teamspaces(
        self,
        include_archived: bool = False,
        limit: int = 50,
    ) -> list[Teamspace]:
        """List teamspaces, skipping archived ones unless asked."""
        query = {} if include_archived else {"archived": False}
        return await self._client.find_all(
            DocumentClass.TEAMSPACE,
            query,
            FindOptions(limit=limit),
            decoder=Teamspace.from_dict,
        )

    async def get_teamspace(self, name: str) -> Teamspace | None:
        return await self._client.find_one(
            DocumentClass.TEAMSPACE, {"name": name}, decoder=Teamspace.from_dict
        )

    async def get_teamspace_by_id(self, teamspace_id: str) -> Teamspace | None:
        return await self._client.find_one(
            DocumentClass.TEAMSPACE, {"_id": teamspace_id}, decoder=Teamspace.from_dict
        )

    async def _require_teamspace(self, name: str) -> Teamspace:
        teamspace = await self.get_teamspace(name)
        if teamspace is None:
            raise NotFoundError(
                f"Teamspace '{name}' not found",
                resource_type="teamspace",
                resource_id=name,
            )
        return teamspace

    # -------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------

    async def list_documents(
        self,
        teamspace: str | None = None,
        parent: str | None = None,
        limit: int = 50,
        fetch_content: bool = True,
    ) -> list[Document]:
        """List documents, most recently modified first.

        Args:
            teamspace: Teamspace name; all teamspaces when omitted
            parent: Only children of this document
            limit: Maximum documents
            fetch_content: Resolve blob references to their text

        Raises:
            NotFoundError: If the teamspace does not exist
        """
        query: dict[str, Any] = {}
        if teamspace is not None:
            space = await self._require_teamspace(teamspace)
            query["space"] = space.id
        if parent is not None:
            query["parent"] = parent

        documents = await self._client.find_all(
            DocumentClass.DOCUMENT,
            query,
            FindOptions(limit=limit, sort={"modifiedOn": SortingOrder.DESCENDING}),
            decoder=Document.from_dict,
        )
        if fetch_content:
            documents = list(await asyncio.gather(*(self._resolve_content(d) for d in documents)))
        return documents

    async def get_document(self, document_id: str, fetch_content: bool = True) -> Document | None:
        """Get a document by id.

        The requested id is filled in when the wire record omits ``_id``.
        """
        document = await self._client.find_one(
            DocumentClass.DOCUMENT, {"_id": document_id}, decoder=Document.from_dict
        )
        if document is None:
            return None
        if not document.id:
            document = document.with_id(document_id)
        if fetch_content:
            document = await self._resolve_content(document)
        return document

    async def _require_document(self, document_id: str) -> Document:
        document = await self.get_document(document_id, fetch_content=False)
        if document is None:
            raise NotFoundError(
                f"Document '{document_id}' not found",
                resource_type="document",
                resource_id=document_id,
            )
        return document

    async def _refetch(self, document_id: str, action: str) -> Document:
        document = await self.get_document(document_id)
        if document is None:
            raise RequestFailedError(f"Failed to fetch {action} document '{document_id}'")
        return document

    async def create_document(
        self,
        teamspace: str,
        title: str,
        content: str | None = None,
        parent: str | None = None,
    ) -> Document:
        """Create a document, storing large content as a blob.

        Raises:
            NotFoundError: If the teamspace does not exist
            NotAuthenticatedError: If no account id was resolved
            ServerError: If the server rejects the transaction
            RequestFailedError: If the created document cannot be re-read
        """
        space = await self._require_teamspace(teamspace)
        stored = await self._store_content(content)

        factory = self._client.transaction_factory()
        tx = factory.create_document(space.id, title, stored, parent)
        await self._write(tx)
        logger.info(
            f"Document created: {tx.object_id}",
            extra={"teamspace": space.id, "blob": stored != content},
        )
        return await self._refetch(tx.object_id, "created")

    async def update_document(
        self,
        document_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> Document:
        """Patch title and/or content.

        Raises:
            NotFoundError: If the document does not exist
        """
        existing = await self._require_document(document_id)
        stored = await self._store_content(content)

        if title is not None or stored is not None:
            factory = self._client.transaction_factory()
            tx = factory.update_document(document_id, existing.space, title=title, content=stored)
            await self._write(tx)
            logger.info(f"Document updated: {document_id}")
        return await self._refetch(document_id, "updated")

    async def delete_document(self, document_id: str) -> None:
        """Remove a document.

        Raises:
            NotFoundError: If the document does not exist
        """
        existing = await self._require_document(document_id)
        tx = self._client.transaction_factory().delete_document(document_id, existing.space)
        await self._write(tx)
        logger.info(f"Document deleted: {document_id}")

    async def move_document(self, document_id: str, new_parent: str) -> Document:
        """Re-parent a document.

        Raises:
            NotFoundError: If the document does not exist
        """
        existing = await self._require_document(document_id)
        tx = self._client.transaction_factory().update_document(
            document_id, existing.space, parent=new_parent
        )
        await self._write(tx)
        return await self._refetch(document_id, "moved")

    # -------------------------------------------------------------------
    # Attachments
    # -------------------------------------------------------------------

    async def list_attachments(self, document_id: str, limit: int = 50) -> list[Attachment]:
        return await self._client.find_all(
            ATTACHMENT,
            {"attachedTo": document_id, "attachedToClass": DocumentClass.DOCUMENT},
            FindOptions(limit=limit),
            decoder=Attachment.from_dict,
        )

    async def add_attachment(
        self,
        document_id: str,
        name: str,
        content: str,
        type: str | None = None,
    ) -> str:
        """Upload content and attach it to a document; returns the attachment id.

        Raises:
            NotFoundError: If the document does not exist
        """
        document = await self._require_document(document_id)
        blob_id = await self._client.upload_blob(content, filename=name)

        attributes: dict[str, object] = {
            "name": name,
            "file": blob_id,
            "size": len(content.encode("utf-8")),
        }
        if type is not None:
            attributes["type"] = type

        return await self._client.add_collection(
            ATTACHMENT,
            document.space,
            document_id,
            DocumentClass.DOCUMENT,
            "attachments",
            attributes,
        )

    async def remove_attachment(self, document_id: str, attachment_id: str) -> None:
        """Detach and remove an attachment.

        Raises:
            NotFoundError: If the document does not exist
        """
        document = await self._require_document(document_id)
        await self._client.remove_collection(
            ATTACHMENT,
            document.space,
            attachment_id,
            document_id,
            DocumentClass.DOCUMENT,
            "attachments",
        )

    # -------------------------------------------------------------------
    # Content and write path
    # -------------------------------------------------------------------

    def uses_blob_storage(self, content: str) -> bool:
        return len(content.encode("utf-8")) >= self._client.config.blob_threshold

    async def _store_content(self, content: str | None) -> str | None:
        """Return the value to store in ``content``: the text or a blob id."""
        if content is None or not self.uses_blob_storage(content):
            return content
        blob_id = await self._client.upload_blob(content, filename="content")
        logger.info(f"Content stored as blob {blob_id} ({len(content.encode('utf-8'))} bytes)")
        return blob_id

    async def _resolve_content(self, document: Document) -> Document:
        blob_id = document.content_blob_id
        if blob_id is None:
            return document
        try:
            text = await self._client.fetch_blob(blob_id)
        except HulyError as e:
            logger.warning(f"Failed to fetch blob {blob_id} for document {document.id}: {e.message}")
            return document
        if text is None:
            return document
        return document.with_content(text)

    async def _write(self, tx: Tx) -> None:
        """Send over the socket, falling back to REST if it cannot be opened."""
        if self._client.config.socket_writes:
            try:
                socket = await self._client.session.get_socket()
            except (ConnectionClosedError, TimeoutError) as e:
                logger.warning(f"Transaction socket unavailable ({e.code}), using REST")
            else:
                try:
                    await socket.send_transaction(tx)
                    return
                except NotConnectedError:
                    logger.warning("Transaction socket not ready, using REST")
        await self._client.send_transaction(tx)
