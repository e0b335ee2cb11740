"""
Transaction records for platform mutations.

Every write is expressed as one of three records:
- TxCreateDoc: create a document (optionally attached to a parent collection)
- TxUpdateDoc: apply a partial patch to a document
- TxRemoveDoc: remove a document

Each record carries its own fresh id, a class tag and the fixed
``core:space:Tx`` space. Records are built once per mutation, are immutable,
and are dropped after the response arrives.

Example:
    >>> factory = TransactionFactory(user_id="acc-1")
    >>> tx = factory.create_document("ts-1", "Notes", content="hello")
    >>> payload = tx.to_dict()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from .primitives import (
    CoreClass,
    CoreSpace,
    DocumentClass,
    Ref,
    Timestamp,
    generate_id,
    now_ms,
)
from .values import Value, decode_map, encode_map


@dataclass(frozen=True)
class TxCreateDoc:
    """Create-document transaction.

    Attributes:
        object_id: Id of the document being created
        object_class: Class tag of the document
        object_space: Space that owns the document
        modified_by: Account performing the write
        attributes: Encoded attribute map
        attached_to: Parent document id (collection members only)
        attached_to_class: Parent class tag
        collection: Parent collection name
    """

    object_id: Ref
    object_class: str
    object_space: str
    modified_by: str
    attributes: tuple[tuple[str, Value], ...] = ()
    attached_to: str | None = None
    attached_to_class: str | None = None
    collection: str | None = None
    created_by: str | None = None
    modified_on: Timestamp = field(default_factory=now_ms)
    created_on: Timestamp | None = None
    id: Ref = field(default_factory=generate_id)

    @property
    def class_(self) -> str:
        return CoreClass.TX_CREATE_DOC

    @property
    def space(self) -> str:
        return CoreSpace.TX

    def attribute_map(self) -> dict[str, Any]:
        return decode_map(self.attributes)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation."""
        result: dict[str, Any] = {
            "_id": self.id,
            "_class": self.class_,
            "space": self.space,
            "modifiedOn": self.modified_on,
            "modifiedBy": self.modified_by,
            "createdOn": self.created_on if self.created_on is not None else self.modified_on,
            "createdBy": self.created_by or self.modified_by,
            "objectId": self.object_id,
            "objectClass": self.object_class,
            "objectSpace": self.object_space,
            "attributes": self.attribute_map(),
        }
        if self.attached_to is not None:
            result["attachedTo"] = self.attached_to
        if self.attached_to_class is not None:
            result["attachedToClass"] = self.attached_to_class
        if self.collection is not None:
            result["collection"] = self.collection
        return result


@dataclass(frozen=True)
class TxUpdateDoc:
    """Update-document transaction carrying a partial patch."""

    object_id: Ref
    object_class: str
    object_space: str
    modified_by: str
    operations: tuple[tuple[str, Value], ...] = ()
    modified_on: Timestamp = field(default_factory=now_ms)
    id: Ref = field(default_factory=generate_id)

    @property
    def class_(self) -> str:
        return CoreClass.TX_UPDATE_DOC

    @property
    def space(self) -> str:
        return CoreSpace.TX

    def operation_map(self) -> dict[str, Any]:
        return decode_map(self.operations)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation."""
        return {
            "_id": self.id,
            "_class": self.class_,
            "space": self.space,
            "modifiedOn": self.modified_on,
            "modifiedBy": self.modified_by,
            "objectId": self.object_id,
            "objectClass": self.object_class,
            "objectSpace": self.object_space,
            "operations": self.operation_map(),
        }


@dataclass(frozen=True)
class TxRemoveDoc:
    """Remove-document transaction."""

    object_id: Ref
    object_class: str
    object_space: str
    modified_by: str
    modified_on: Timestamp = field(default_factory=now_ms)
    id: Ref = field(default_factory=generate_id)

    @property
    def class_(self) -> str:
        return CoreClass.TX_REMOVE_DOC

    @property
    def space(self) -> str:
        return CoreSpace.TX

    def to_dict(self) -> dict[str, Any]:
        """Wire representation."""
        return {
            "_id": self.id,
            "_class": self.class_,
            "space": self.space,
            "modifiedOn": self.modified_on,
            "modifiedBy": self.modified_by,
            "objectId": self.object_id,
            "objectClass": self.object_class,
            "objectSpace": self.object_space,
        }


Tx = Union[TxCreateDoc, TxUpdateDoc, TxRemoveDoc]


class TransactionFactory:
    """Builds transaction records on behalf of one account.

    The account id is used as ``modifiedBy`` on every record and as
    ``createdBy`` on creates.
    """

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id

    def create(
        self,
        object_class: str,
        space: str,
        attributes: Mapping[str, Any],
        *,
        object_id: str | None = None,
        attached_to: str | None = None,
        attached_to_class: str | None = None,
        collection: str | None = None,
    ) -> TxCreateDoc:
        """Generic create record."""
        return TxCreateDoc(
            object_id=Ref(object_id) if object_id else generate_id(),
            object_class=object_class,
            object_space=space,
            modified_by=self.user_id,
            created_by=self.user_id,
            attributes=encode_map(attributes),
            attached_to=attached_to,
            attached_to_class=attached_to_class,
            collection=collection,
        )

    def update(
        self,
        object_class: str,
        space: str,
        object_id: str,
        operations: Mapping[str, Any],
    ) -> TxUpdateDoc:
        """Generic update record."""
        return TxUpdateDoc(
            object_id=Ref(object_id),
            object_class=object_class,
            object_space=space,
            modified_by=self.user_id,
            operations=encode_map(operations),
        )

    def remove(self, object_class: str, space: str, object_id: str) -> TxRemoveDoc:
        """Generic remove record."""
        return TxRemoveDoc(
            object_id=Ref(object_id),
            object_class=object_class,
            object_space=space,
            modified_by=self.user_id,
        )

    def create_document(
        self,
        teamspace_id: str,
        title: str,
        content: str | None = None,
        parent: str | None = None,
    ) -> TxCreateDoc:
        """Create record for a teamspace document.

        Args:
            teamspace_id: Owning teamspace id
            title: Document title (also written to ``name``)
            content: Inline text or a blob reference
            parent: Parent document id, top level when omitted
        """
        attributes: dict[str, Any] = {
            "title": title,
            "name": title,
            "parent": parent or DocumentClass.NO_PARENT,
            "attachments": 0,
            "children": 0,
            "content": content if content is not None else "",
        }
        return self.create(
            DocumentClass.DOCUMENT,
            teamspace_id,
            attributes,
            object_id=generate_id("document"),
        )

    def update_document(
        self,
        document_id: str,
        teamspace_id: str,
        title: str | None = None,
        content: str | None = None,
        parent: str | None = None,
    ) -> TxUpdateDoc:
        """Update record for a teamspace document; only given fields are patched."""
        operations: dict[str, Any] = {}
        if title is not None:
            operations["title"] = title
            operations["name"] = title
        if content is not None:
            operations["content"] = content
        if parent is not None:
            operations["parent"] = parent
        return self.update(DocumentClass.DOCUMENT, teamspace_id, document_id, operations)

    def delete_document(self, document_id: str, teamspace_id: str) -> TxRemoveDoc:
        return self.remove(DocumentClass.DOCUMENT, teamspace_id, document_id)
