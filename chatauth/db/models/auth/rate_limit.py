# chatauth/db/models/auth/rate_limit.py
from sqlmodel import SQLModel, Field


class RateLimitCounter(SQLModel, table=True):
    """Fixed-window counter keyed by "{scope}:{subject}:{window}"."""
    __tablename__ = "rate_limits"
    key: str = Field(primary_key=True, max_length=255)
    count: int = Field(default=0)
    # Epoch milliseconds of the last counted request
    last_request: int = Field(default=0)
