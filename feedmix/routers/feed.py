# feedmix/routers/feed.py
from dataclasses import asdict
from datetime import timezone
from typing import Any, Dict, Optional
import random

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import col, func, or_, select

from ..config import DEFAULT_FEED_LIMIT, MAX_FEED_LIMIT
from ..logging_setup import get_logger
from ..mixer import ContentItem, MixResult, UserLocationContext, mix_local_content
from ..models import Article
from ..prefs_store import ContentRatioService
from ..ratios import ContentRatios, interleave_by_ratios
from ..schema import ContentItemIn, InterleaveRequest, MixRequest
from ..store import get_session
from .prefs import get_ratio_service

logger = get_logger("feedmix.routes.feed")

router = APIRouter(prefix="/feed")


def article_to_item(a: Article) -> ContentItem:
    published_ms = 0
    if a.published_at:
        dt = a.published_at if a.published_at.tzinfo else a.published_at.replace(tzinfo=timezone.utc)
        published_ms = int(dt.timestamp() * 1000)
    return ContentItem(
        id=str(a.id),
        title=a.title,
        excerpt=a.excerpt or "",
        body=a.content or "",
        category=a.category or "",
        region=a.region,
        published_ms=published_ms,
        city=a.city,
        county=a.county,
        source=a.source or "",
        url=a.url or "",
    )


def _to_item(body: ContentItemIn) -> ContentItem:
    return ContentItem(**body.model_dump())


def _item_out(it: ContentItem) -> Dict[str, Any]:
    out = asdict(it)
    out["location_level"] = it.location_level.value if it.location_level else None
    return out


def _result_out(result: MixResult) -> Dict[str, Any]:
    return {
        "items": [_item_out(it) for it in result.items],
        "level": result.level.value,
        "stats": result.stats.to_dict(),
    }


def _limit(limit: Optional[int]) -> int:
    return max(0, min(DEFAULT_FEED_LIMIT if limit is None else limit, MAX_FEED_LIMIT))


def _rng(seed: Optional[int]) -> Optional[random.Random]:
    return random.Random(seed) if seed is not None else None


@router.post("/mix")
def mix(body: MixRequest):
    """Mix a caller-supplied pool for the given location."""
    context = UserLocationContext(**body.location.model_dump())
    result = mix_local_content([_to_item(i) for i in body.items], context, _limit(body.limit), rng=_rng(body.seed))
    return _result_out(result)


@router.get("/local")
def local_feed(
    region: Optional[str] = Query(None),
    county: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=0),
    seed: Optional[int] = Query(None),
):
    """Mix stored articles: the requested region's plus untagged ones."""
    stmt = select(Article)
    if region and region.strip():
        stmt = stmt.where(or_(col(Article.region).is_(None), func.lower(Article.region) == region.strip().lower()))
    with get_session() as s:
        pool = [article_to_item(a) for a in s.exec(stmt).all()]

    logger.info(f"Local feed: region={region} county={county} city={city} pool={len(pool)}")
    context = UserLocationContext(region=region, county=county, city=city)
    return _result_out(mix_local_content(pool, context, _limit(limit), rng=_rng(seed)))


@router.post("/interleave")
def interleave(body: InterleaveRequest, service: ContentRatioService = Depends(get_ratio_service)):
    """Blend general / local / sport pools by the given (or stored) ratios."""
    if body.ratios is not None:
        ratios = ContentRatios.clamped(body.ratios.general, body.ratios.local, body.ratios.sport)
        if not ratios.is_balanced:
            raise HTTPException(
                status_code=422,
                detail=f"Content ratios must sum to 100, got {ratios.total}",
            )
    else:
        ratios = service.load(body.user_id)

    items = interleave_by_ratios(body.general, body.local, body.sport, min(body.target, MAX_FEED_LIMIT), ratios)
    return {"items": items, "ratios": ratios.to_dict()}
