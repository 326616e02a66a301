"""Documents read back from the index store."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """A normalized document as returned by get or search."""
    id: str
    version: Optional[int] = None
    index: Optional[str] = None
    kind: Optional[str] = None
    source: dict[str, Any] = Field(default_factory=dict)
