from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

class RewriteRequest(BaseModel):
    original_text: str = Field(min_length=1)

class RewriteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    rewritten_text: str = Field(min_length=1)

class Draft(BaseModel):
    """A rewritten message waiting for its owner to send or cancel it."""
    model_config = ConfigDict(frozen=True)

    owner_id: int
    rewritten_text: str
    origin_channel_id: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
