"""
Huly Python SDK - Client library for the Huly collaboration platform.

This SDK provides an async client for one Huly workspace:
- Session authentication (server discovery, login, workspace selection)
- REST find queries with lenient, typed record decoding
- Transaction records for create/update/remove and collection writes
- A persistent, id-correlated transaction socket
- Blob-aware document operations and tracker operations

Example:
    >>> from huly_sdk import ClientConfig, HulyClient
    >>>
    >>> config = ClientConfig(
    ...     email="me@example.com",
    ...     password="secret",
    ...     workspace="acme",
    ... )
    >>> async with HulyClient(config) as client:
    ...     teamspaces = await client.documents.list_teamspaces()
    ...     doc = await client.documents.create_document(
    ...         teamspaces[0].name, "Meeting notes", content="Agenda"
    ...     )

Invariants:
    - All operations authenticate lazily and at most once per session
    - Transaction records are immutable and never retried
    - Write failures propagate; only read-side blob fetches degrade

Version: 1.0.0
"""

__version__ = "1.0.0"

from ._socket_client import SocketState, TransactionResponse, TransactionSocket
from .client import HulyClient
from .config import ClientConfig
from .documents import DocumentClient
from .errors import (
    AuthenticationError,
    ConfigError,
    ConnectionClosedError,
    DecodeError,
    HulyError,
    InvalidInputError,
    InvalidResponseError,
    InvalidURLError,
    NotAuthenticatedError,
    NotConnectedError,
    NotFoundError,
    RequestFailedError,
    ServerError,
    TimeoutError,
)
from .issues import IssueClient
from .logs import setup_logging
from .models import (
    Attachment,
    BlobRef,
    Document,
    FindOptions,
    Issue,
    Person,
    Project,
    SortingOrder,
    Teamspace,
)
from .primitives import (
    CoreClass,
    CoreSpace,
    DocumentClass,
    Ref,
    Timestamp,
    TrackerClass,
    generate_id,
    now_ms,
)
from .session import Session
from .transactions import TransactionFactory, Tx, TxCreateDoc, TxRemoveDoc, TxUpdateDoc
from .values import Value, ValueKind

__all__ = [
    # Version
    "__version__",
    # Client
    "HulyClient",
    "ClientConfig",
    "Session",
    "DocumentClient",
    "IssueClient",
    "setup_logging",
    # Socket
    "TransactionSocket",
    "TransactionResponse",
    "SocketState",
    # Records
    "Document",
    "Teamspace",
    "Project",
    "Issue",
    "Person",
    "Attachment",
    "BlobRef",
    "FindOptions",
    "SortingOrder",
    # Transactions
    "Tx",
    "TxCreateDoc",
    "TxUpdateDoc",
    "TxRemoveDoc",
    "TransactionFactory",
    "Value",
    "ValueKind",
    # Primitives
    "Ref",
    "Timestamp",
    "now_ms",
    "generate_id",
    "CoreClass",
    "CoreSpace",
    "DocumentClass",
    "TrackerClass",
    # Errors
    "HulyError",
    "ConfigError",
    "AuthenticationError",
    "NotAuthenticatedError",
    "InvalidURLError",
    "InvalidInputError",
    "NotFoundError",
    "RequestFailedError",
    "InvalidResponseError",
    "DecodeError",
    "NotConnectedError",
    "ConnectionClosedError",
    "TimeoutError",
    "ServerError",
]
