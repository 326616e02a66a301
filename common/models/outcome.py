"""Operation records and the outcome taxonomy reported to the checker."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict


class OpType(str, Enum):
    """Result tag of an operation record."""
    INVOKE = "invoke"
    OK = "ok"
    FAIL = "fail"
    INFO = "info"


class ErrorTag(str, Enum):
    """Semantic error attached to a failed or indeterminate operation."""
    NO_MASTER = "no-master"
    DUPLICATE_KEY = "duplicate-key"
    REJECTED_EXECUTION = "rejected-execution"


class Operation(BaseModel):
    """A single operation exchanged with the harness.

    Records are immutable; completing one yields a new record.
    """
    model_config = ConfigDict(frozen=True)

    f: str
    process: Optional[Union[int, str]] = None
    value: Any = None
    type: OpType = OpType.INVOKE
    error: Optional[ErrorTag] = None

    def complete(self, type: OpType, error: Optional[ErrorTag] = None) -> "Operation":
        """Return a copy carrying the given result tag."""
        if type == OpType.INVOKE:
            raise ValueError("An operation cannot complete as invoke")
        return self.model_copy(update={"type": type, "error": error})

    @property
    def is_definite(self) -> bool:
        return self.type in (OpType.OK, OpType.FAIL)
