"""
Identifier/timestamp primitives and platform constants.

Platform objects are addressed by opaque string refs and stamped with
millisecond epoch timestamps. Class and space names are the string tags the
platform uses to type documents and transactions.
"""

from __future__ import annotations

import time
import uuid
from typing import NewType

Timestamp = NewType("Timestamp", int)
Ref = NewType("Ref", str)


def now_ms() -> Timestamp:
    """Current time in milliseconds since epoch."""
    return Timestamp(int(time.time() * 1000))


def generate_id(prefix: str | None = None) -> Ref:
    """Fresh random identifier, optionally namespaced (``prefix:uuid``)."""
    value = str(uuid.uuid4())
    if prefix:
        return Ref(f"{prefix}:{value}")
    return Ref(value)


class CoreClass:
    """Core platform class tags."""

    TX = "core:class:Tx"
    TX_CREATE_DOC = "core:class:TxCreateDoc"
    TX_UPDATE_DOC = "core:class:TxUpdateDoc"
    TX_REMOVE_DOC = "core:class:TxRemoveDoc"
    DOC = "core:class:Doc"
    ATTACHED_DOC = "core:class:AttachedDoc"
    SPACE = "core:class:Space"


class CoreSpace:
    """Well-known spaces."""

    TX = "core:space:Tx"
    SPACE = "core:space:Space"


class DocumentClass:
    DOCUMENT = "document:class:Document"
    TEAMSPACE = "document:class:Teamspace"
    NO_PARENT = "document:ids:NoParent"


class TrackerClass:
    PROJECT = "tracker:class:Project"
    ISSUE = "tracker:class:Issue"
    ISSUE_KIND = "tracker:taskTypes:Issue"


CONTACT_PERSON = "contact:class:Person"
ATTACHMENT = "attachment:class:Attachment"
TAG_ELEMENT = "tags:class:TagElement"
CHAT_MESSAGE = "chunter:class:ChatMessage"

# Content at or above this size (UTF-8 bytes) is stored as a blob
BLOB_STORAGE_THRESHOLD = 10_240

# Segment that marks a content value as a blob reference
BLOB_REF_MARKER = "-content-"
