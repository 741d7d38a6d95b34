"""
Change descriptor for Query.apply (findAndModify).
"""

from dataclasses import dataclass
from typing import Any

from ..constants import OPERATOR_PREFIX
from ..exceptions import (ReplacementContainsOperatorsError,
                          UpdateRequiresOperatorsError)


@dataclass
class Change:
    """
    Holds the fields for running a findAndModify command via Query.apply.

    Exactly one mode applies: remove when `remove` is set, replace when
    `replace` is set, update otherwise.

    Attributes:
        update: Update document (operators) or replacement document
        replace: Replace the matched document instead of updating it
        remove: Remove the matched document instead of updating it
        upsert: Insert when nothing matches (ignored when removing)
        return_new: Return the modified document rather than the original
            (ignored when removing)
    """

    update: Any = None
    replace: bool = False
    remove: bool = False
    upsert: bool = False
    return_new: bool = False

    @property
    def mode(self) -> str:
        if self.remove:
            return "remove"
        if self.replace:
            return "replace"
        return "update"

    @property
    def suppresses_not_found(self) -> bool:
        """
        Whether a missing document is reported as success.

        An upsert that does not ask for the new document back has nothing
        useful to report when the document did not exist before.
        """
        return not self.remove and self.upsert and not self.return_new


def check_replacement(replacement: Any) -> None:
    """Reject replacement documents carrying update operators."""
    if isinstance(replacement, dict):
        for key in replacement:
            if str(key).startswith(OPERATOR_PREFIX):
                raise ReplacementContainsOperatorsError(context={"key": key})


def check_update(update: Any) -> None:
    """Reject update documents (or pipelines) with plain field keys."""
    stages = update if isinstance(update, list) else [update]
    for stage in stages:
        if not isinstance(stage, dict) or not stage:
            raise UpdateRequiresOperatorsError(
                context={"update_type": type(stage).__name__}
            )
        for key in stage:
            if not str(key).startswith(OPERATOR_PREFIX):
                raise UpdateRequiresOperatorsError(context={"key": key})
