from pydantic import AfterValidator, BaseModel, Field
from typing import Annotated, Any, Dict, List, Literal, Optional
from datetime import datetime, timezone

class ContentItemIn(BaseModel):
    id: str
    title: str
    excerpt: str = ""
    body: str = ""
    category: str = ""
    region: Optional[str] = None      # None = untagged
    published_ms: int = 0             # newest-first ordering key
    city: Optional[str] = None
    county: Optional[str] = None
    source: str = ""
    url: str = ""

class LocationIn(BaseModel):
    region: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None

class MixRequest(BaseModel):
    items: List[ContentItemIn] = Field(default_factory=list)
    location: LocationIn = Field(default_factory=LocationIn)
    limit: Optional[int] = Field(default=None, ge=0)
    seed: Optional[int] = None        # fixes the shuffle, for reproducible feeds

class RatiosIn(BaseModel):
    user_id: Optional[str] = None
    general: int
    local: int
    sport: int

class LocalRatioIn(BaseModel):
    user_id: Optional[str] = None
    value: int

class BalanceIn(BaseModel):
    user_id: Optional[str] = None
    field: Literal["general", "local", "sport"]
    value: int

class InterleaveRequest(BaseModel):
    general: List[Dict[str, Any]] = Field(default_factory=list)
    local: List[Dict[str, Any]] = Field(default_factory=list)
    sport: List[Dict[str, Any]] = Field(default_factory=list)
    target: int = Field(default=20, ge=0)
    user_id: Optional[str] = None
    ratios: Optional[RatiosIn] = None  # falls back to the user's stored ratios

def _as_utc(value: datetime) -> datetime:
    # naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]

class ArticleIn(BaseModel):
    title: str
    excerpt: str = ""
    content: str = ""
    category: str = ""
    region: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    source: str = ""
    url: str = ""
    published_at: Optional[UtcDatetime] = None

class ArticleUpdate(BaseModel):
    title: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    region: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    source: Optional[str] = None
    url: Optional[str] = None
    published_at: Optional[UtcDatetime] = None

