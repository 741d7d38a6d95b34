"""
Constants for MDB_ODM.

This module contains all shared constants used across the codebase to avoid
magic strings and numbers in the query compiler and the connection layer.
"""

from typing import Final

# ============================================================================
# QUERY OPERATOR CONSTANTS
# ============================================================================

OP_EQ: Final[str] = "$eq"
OP_NE: Final[str] = "$ne"
OP_LT: Final[str] = "$lt"
OP_LTE: Final[str] = "$lte"
OP_GT: Final[str] = "$gt"
OP_GTE: Final[str] = "$gte"
OP_IN: Final[str] = "$in"
OP_NIN: Final[str] = "$nin"
OP_AND: Final[str] = "$and"
OP_OR: Final[str] = "$or"

OPERATOR_PREFIX: Final[str] = "$"
"""Leading character reserved for MongoDB operators in document keys."""

# Filter key suffixes, most specific first so " <=" is never read as " <"
# and " not in" is never read as " in".
FILTER_SUFFIXES: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
    ((" <=",), OP_LTE),
    ((" <",), OP_LT),
    ((" >=",), OP_GTE),
    ((" >",), OP_GT),
    ((" not in", " NOT IN"), OP_NIN),
    ((" in", " IN"), OP_IN),
    ((" !=", " <>"), OP_NE),
)
"""(markers, operator) pairs recognised at the end of a filter key."""

# ============================================================================
# FIELD DEFAULTING CONSTANTS
# ============================================================================

DEFAULT_ID_FIELD: Final[str] = "_id"
"""Stored name of the identity field."""

DEFAULT_CREATE_AT_FIELD: Final[str] = "createAt"
"""Stored name of the creation timestamp of DefaultField documents."""

DEFAULT_UPDATE_AT_FIELD: Final[str] = "updateAt"
"""Stored name of the update timestamp of DefaultField documents."""

BSON_FIELD_METADATA: Final[str] = "bson"
"""Dataclass field metadata key naming the stored field name."""

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[str] = "27017"

DEFAULT_CONNECT_TIMEOUT_MS: Final[int] = 30000
"""Default timeout for creating connections to the server (milliseconds)."""

DEFAULT_MAX_POOL_SIZE: Final[int] = 100
"""Default maximum connection pool size per server."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 0
"""Default minimum connection pool size per server."""

DEFAULT_SOCKET_TIMEOUT_MS: Final[int] = 300000
"""Default socket read/write timeout (milliseconds)."""

DEFAULT_PING_TIMEOUT_S: Final[int] = 15
"""Timeout for the initial ping after connecting (seconds)."""

RESERVED_CREDENTIAL_CHARS: Final[tuple[str, ...]] = (":", "/", "@")
"""Characters that cannot appear in a username or password outside a URI."""

SUPPORTED_READ_PREFERENCES: Final[tuple[str, ...]] = (
    "primary",
    "primaryPreferred",
    "secondary",
    "secondaryPreferred",
    "nearest",
)

# ============================================================================
# TRANSACTION CONSTANTS
# ============================================================================

MIN_TRANSACTION_SERVER_VERSION: Final[str] = "4.0"
"""Minimum MongoDB server version supporting multi-document transactions."""

TRANSIENT_TRANSACTION_ERROR: Final[str] = "TransientTransactionError"
"""Error label that makes the driver re-run a transaction callback."""

STANDALONE_TOPOLOGY: Final[str] = "Single"
"""Driver topology type name of a standalone server (no transactions)."""

DUPLICATE_KEY_ERROR_CODE: Final[int] = 11000
"""Server error code for duplicate key violations."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

MAX_METRICS: Final[int] = 10000
"""Maximum number of metric keys kept before evicting the oldest."""
