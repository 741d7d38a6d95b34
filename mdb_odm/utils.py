"""
Small helpers shared by the field defaulting engine and the connection layer.
"""

from datetime import datetime, timezone

from bson import ObjectId
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from .constants import DUPLICATE_KEY_ERROR_CODE
from .exceptions import DocumentNotFoundError


def now() -> datetime:
    """
    Return the current UTC time truncated to millisecond precision.

    BSON dates only keep milliseconds, so a truncated value reads back
    exactly as it was written.
    """
    current = datetime.now(timezone.utc)
    return current.replace(microsecond=current.microsecond // 1000 * 1000)


def new_object_id() -> ObjectId:
    """Generate a new ObjectId."""
    return ObjectId()


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two dotted version strings.

    Comparison is done to the lesser precision of the two versions, so
    "3.2" equals "3.2.11" while "3.2.0" is less than "3.2.11".

    Returns:
        A positive int if v1 > v2, a negative int if v1 < v2, 0 if equal

    Raises:
        ValueError: If a compared component is not an integer
    """
    for part1, part2 in zip(v1.split("."), v2.split(".")):
        difference = int(part1) - int(part2)
        if difference != 0:
            return difference
    return 0


def is_dup(error: BaseException | None) -> bool:
    """Check whether an error is a duplicate key (E11000) error."""
    if error is None:
        return False
    if isinstance(error, DuplicateKeyError):
        return True
    if isinstance(error, BulkWriteError):
        write_errors = error.details.get("writeErrors", [])
        return any(e.get("code") == DUPLICATE_KEY_ERROR_CODE for e in write_errors)
    if isinstance(error, PyMongoError):
        return "E11000" in str(error)
    return False


def is_no_documents(error: BaseException | None) -> bool:
    """Check whether an error means no document matched."""
    return isinstance(error, DocumentNotFoundError)
