"""
Domain records and query options.

Each record maps 1:1 to a platform document. Decoding is lenient: absent
optional fields fall back to defaults because the upstream API omits fields
inconsistently. A field that is present with the wrong JSON type is still an
error and raises DecodeError naming its path.

Invariants:
    - Document and Teamspace default a missing ``_id`` to ""
    - Project, Issue, Person and Attachment require ``_id``
    - ``Document.content`` may hold literal text or a blob reference;
      check ``is_content_blob`` before using it
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Mapping

from .errors import DecodeError
from .primitives import (
    ATTACHMENT,
    BLOB_REF_MARKER,
    CONTACT_PERSON,
    DocumentClass,
    TrackerClass,
)

_TYPE_NAMES = {
    str: "string",
    int: "integer",
    bool: "boolean",
    dict: "object",
    list: "array",
}


def _optional(data: Mapping[str, Any], key: str, kind: type, path: str, default: Any = None) -> Any:
    """Read an optional field, type-checked when present."""
    value = data.get(key)
    if value is None:
        return default
    if kind is int:
        # JSON numbers may arrive as 1.0; bools are not numbers here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError("Expected integer", f"{path}.{key}")
        if isinstance(value, float):
            if not value.is_integer():
                raise DecodeError("Expected integer", f"{path}.{key}")
            return int(value)
        return value
    if not isinstance(value, kind):
        raise DecodeError(f"Expected {_TYPE_NAMES.get(kind, kind.__name__)}", f"{path}.{key}")
    return value


def _required(data: Mapping[str, Any], key: str, kind: type, path: str) -> Any:
    if data.get(key) is None:
        raise DecodeError("Missing required field", f"{path}.{key}")
    return _optional(data, key, kind, path)


def _check_object(data: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise DecodeError("Expected object", path)
    return data


class SortingOrder(Enum):
    ASCENDING = 1
    DESCENDING = -1


@dataclass(frozen=True)
class FindOptions:
    """Options for find queries.

    Only ``limit``, ``sort`` and ``total`` are sent on the wire. ``lookup``
    and ``projection`` are accepted for API symmetry but are not serialized.

    Attributes:
        limit: Maximum records to return
        sort: Field name -> SortingOrder
        lookup: Nested-object lookup (unsupported)
        projection: Field projection (unsupported)
        total: Ask the server for a total count
    """

    limit: int | None = None
    sort: Mapping[str, SortingOrder] | None = None
    lookup: Mapping[str, Any] | None = None
    projection: Mapping[str, int] | None = None
    total: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation."""
        result: dict[str, Any] = {}
        if self.limit is not None:
            result["limit"] = self.limit
        if self.sort:
            result["sort"] = {name: order.value for name, order in self.sort.items()}
        if self.total is not None:
            result["total"] = self.total
        return result

    def with_limit(self, limit: int) -> FindOptions:
        return replace(self, limit=limit)


@dataclass(frozen=True)
class BlobRef:
    """Reference to externally stored content."""

    id: str
    name: str | None = None
    size: int | None = None
    type: str | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> BlobRef:
        data = _check_object(data, path)
        return cls(
            id=_required(data, "id", str, path),
            name=_optional(data, "name", str, path),
            size=_optional(data, "size", int, path),
            type=_optional(data, "type", str, path),
        )


@dataclass(frozen=True)
class Document:
    """A teamspace document.

    Attributes:
        id: Document id ("" when the wire record omits it)
        class_: Class tag
        space: Owning teamspace id
        title: Document title
        name: Alternate title field used by some records
        content: Literal text or blob reference
        parent: Parent document id
    """

    id: str = ""
    class_: str = DocumentClass.DOCUMENT
    space: str = ""
    modified_on: int | None = None
    modified_by: str | None = None
    title: str | None = None
    name: str | None = None
    content: str | None = None
    parent: str | None = None
    attached_to: str | None = None
    attachments: int | None = None
    children: int | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> Document:
        data = _check_object(data, path)
        return cls(
            id=_optional(data, "_id", str, path, ""),
            class_=_optional(data, "_class", str, path, DocumentClass.DOCUMENT),
            space=_optional(data, "space", str, path, ""),
            modified_on=_optional(data, "modifiedOn", int, path),
            modified_by=_optional(data, "modifiedBy", str, path),
            title=_optional(data, "title", str, path),
            name=_optional(data, "name", str, path),
            content=_optional(data, "content", str, path),
            parent=_optional(data, "parent", str, path),
            attached_to=_optional(data, "attachedTo", str, path),
            attachments=_optional(data, "attachments", int, path),
            children=_optional(data, "children", int, path),
        )

    @property
    def display_name(self) -> str:
        """Title, falling back to name."""
        return self.title or self.name or "Untitled"

    @property
    def is_content_blob(self) -> bool:
        return self.content is not None and BLOB_REF_MARKER in self.content

    @property
    def content_blob_id(self) -> str | None:
        return self.content if self.is_content_blob else None

    def with_content(self, content: str | None) -> Document:
        return replace(self, content=content)

    def with_id(self, id: str) -> Document:
        return replace(self, id=id)

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["display_name"] = self.display_name
        return result


@dataclass(frozen=True)
class Teamspace:
    """A document teamspace."""

    id: str = ""
    class_: str = DocumentClass.TEAMSPACE
    space: str = ""
    modified_on: int | None = None
    modified_by: str | None = None
    name: str = "Unnamed"
    description: str | None = None
    archived: bool | None = None
    private: bool | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> Teamspace:
        data = _check_object(data, path)
        return cls(
            id=_optional(data, "_id", str, path, ""),
            class_=_optional(data, "_class", str, path, DocumentClass.TEAMSPACE),
            space=_optional(data, "space", str, path, ""),
            modified_on=_optional(data, "modifiedOn", int, path),
            modified_by=_optional(data, "modifiedBy", str, path),
            name=_optional(data, "name", str, path, "Unnamed"),
            description=_optional(data, "description", str, path),
            archived=_optional(data, "archived", bool, path),
            private=_optional(data, "private", bool, path),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Project:
    """A tracker project."""

    id: str
    class_: str = TrackerClass.PROJECT
    space: str = ""
    name: str = "Unnamed"
    identifier: str | None = None
    description: str | None = None
    default_issue_status: str | None = None
    sequence: int | None = None
    modified_on: int | None = None
    modified_by: str | None = None
    created_on: int | None = None
    created_by: str | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> Project:
        data = _check_object(data, path)
        return cls(
            id=_required(data, "_id", str, path),
            class_=_optional(data, "_class", str, path, TrackerClass.PROJECT),
            space=_optional(data, "space", str, path, ""),
            name=_optional(data, "name", str, path, "Unnamed"),
            identifier=_optional(data, "identifier", str, path),
            description=_optional(data, "description", str, path),
            default_issue_status=_optional(data, "defaultIssueStatus", str, path),
            sequence=_optional(data, "sequence", int, path),
            modified_on=_optional(data, "modifiedOn", int, path),
            modified_by=_optional(data, "modifiedBy", str, path),
            created_on=_optional(data, "createdOn", int, path),
            created_by=_optional(data, "createdBy", str, path),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Issue:
    """A tracker issue."""

    id: str
    class_: str = TrackerClass.ISSUE
    space: str = ""
    identifier: str | None = None
    title: str = ""
    description: str | None = None
    status: str | None = None
    priority: int | None = None
    number: int | None = None
    assignee: str | None = None
    due_date: int | None = None
    modified_on: int | None = None
    modified_by: str | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> Issue:
        data = _check_object(data, path)
        return cls(
            id=_required(data, "_id", str, path),
            class_=_optional(data, "_class", str, path, TrackerClass.ISSUE),
            space=_optional(data, "space", str, path, ""),
            identifier=_optional(data, "identifier", str, path),
            title=_optional(data, "title", str, path, ""),
            description=_optional(data, "description", str, path),
            status=_optional(data, "status", str, path),
            priority=_optional(data, "priority", int, path),
            number=_optional(data, "number", int, path),
            assignee=_optional(data, "assignee", str, path),
            due_date=_optional(data, "dueDate", int, path),
            modified_on=_optional(data, "modifiedOn", int, path),
            modified_by=_optional(data, "modifiedBy", str, path),
        )

    def with_identifier(self, identifier: str) -> Issue:
        return replace(self, identifier=identifier)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Person:
    """A contact person."""

    id: str
    class_: str = CONTACT_PERSON
    space: str = ""
    name: str = "Unnamed"
    email: str | None = None
    city: str | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> Person:
        data = _check_object(data, path)
        return cls(
            id=_required(data, "_id", str, path),
            class_=_optional(data, "_class", str, path, CONTACT_PERSON),
            space=_optional(data, "space", str, path, ""),
            name=_optional(data, "name", str, path, "Unnamed"),
            email=_optional(data, "email", str, path),
            city=_optional(data, "city", str, path),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Attachment:
    """A file attached to a document collection."""

    id: str
    class_: str = ATTACHMENT
    space: str = ""
    modified_on: int | None = None
    modified_by: str | None = None
    attached_to: str = ""
    attached_to_class: str = ""
    collection: str = ""
    name: str = "Unnamed"
    file: str = ""
    type: str | None = None
    size: int | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "$") -> Attachment:
        data = _check_object(data, path)
        return cls(
            id=_required(data, "_id", str, path),
            class_=_optional(data, "_class", str, path, ATTACHMENT),
            space=_optional(data, "space", str, path, ""),
            modified_on=_optional(data, "modifiedOn", int, path),
            modified_by=_optional(data, "modifiedBy", str, path),
            attached_to=_optional(data, "attachedTo", str, path, ""),
            attached_to_class=_optional(data, "attachedToClass", str, path, ""),
            collection=_optional(data, "collection", str, path, ""),
            name=_optional(data, "name", str, path, "Unnamed"),
            file=_optional(data, "file", str, path, ""),
            type=_optional(data, "type", str, path),
            size=_optional(data, "size", int, path),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
