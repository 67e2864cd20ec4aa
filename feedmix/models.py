from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone

def utc_now() -> datetime:
    # the ORM refuses naive datetimes
    return datetime.now(timezone.utc)

class Article(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    excerpt: Optional[str] = ""
    content: Optional[str] = ""
    category: Optional[str] = ""
    region: Optional[str] = Field(default=None, index=True)  # None = untagged
    county: Optional[str] = None
    city: Optional[str] = None
    source: Optional[str] = ""
    url: Optional[str] = ""
    published_at: Optional[datetime] = None  # always UTC-aware

class ContentRatioPrefs(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, unique=True)
    general_ratio: int = 40
    local_ratio: int = 35
    sport_ratio: int = 25
    updated_at: datetime = Field(default_factory=utc_now)
