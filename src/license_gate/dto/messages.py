"""Wire format of the cross-tab broadcast channel."""

from typing import Any, Literal

from pydantic import BaseModel, Field

MessageType = Literal["invalidate", "update", "clear"]


class CachePayload(BaseModel):
    """Value carried by an ``update`` message."""

    data: Any = Field(..., description="The cached value")
    ttl: float = Field(..., description="Time-to-live in milliseconds", gt=0)


class CacheMessage(BaseModel):
    """A cache change broadcast to every other cache instance.

    ``seq`` and ``origin`` form the per-key logical stamp used to order
    messages; ``timestamp`` is the writer's wall clock and is kept as the
    entry's write time on the receiving side.
    """

    type: MessageType = Field(..., description="Kind of change")
    key: str | None = Field(None, description="Affected key (absent for clear)")
    data: CachePayload | None = Field(None, description="New value (update only)")
    timestamp: float = Field(..., description="Writer's clock (epoch milliseconds)")
    seq: int = Field(..., description="Per-key hybrid logical clock (milliseconds)", ge=0)
    origin: str = Field(..., description="Identifier of the writing cache instance")
    version: str = Field(..., description="Cache format version of the writer")

    @property
    def stamp(self) -> tuple[int, str]:
        """Logical stamp; compares lexicographically, origin breaks ties."""
        return (self.seq, self.origin)
