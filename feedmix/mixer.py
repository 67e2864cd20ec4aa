"""
mixer.py
========
Local content mixing.

Given a flat pool of location-tagged items and the user's location
(region > county > city, coarse to fine), build a feed that blends the
tiers according to a fixed mix:

  - city selected:    80% city + 15% county + 5% region
  - county selected:  85% county + 15% region
  - region selected:  100% region
  - nothing selected: 100% of the pool (broadest tier)

Steps: resolve specificity -> split the pool into tiers (finer tiers claim
items first) -> compute quotas, pushing any shortfall outward -> shuffle
each tier and take its quota -> top up from what is left -> newest first.

Pure functions only. Input lists are never mutated; returned items are
copies tagged with the tier they were picked for.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional
import random

from .logging_setup import get_logger
from .ratios import round_half_up

logger = get_logger("feedmix.mixer")


class LocationLevel(str, Enum):
    CITY = "city"
    COUNTY = "county"
    REGION = "region"
    NONE = "none"


# fine -> coarse
TIER_ORDER = (LocationLevel.CITY, LocationLevel.COUNTY, LocationLevel.REGION)

_COUNTY_PREFIXES = ("powiat ", "county of ")
_COUNTY_SUFFIX = " county"


@dataclass(frozen=True)
class ContentItem:
    id: str
    title: str
    excerpt: str = ""
    body: str = ""
    category: str = ""
    region: Optional[str] = None
    published_ms: int = 0
    city: Optional[str] = None
    county: Optional[str] = None
    source: str = ""
    url: str = ""
    location_level: Optional[LocationLevel] = None

    @property
    def search_text(self) -> str:
        return f"{self.title} {self.excerpt or ''} {self.body or ''}".casefold()


@dataclass(frozen=True)
class UserLocationContext:
    region: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class MixConfig:
    city: int
    county: int
    region: int

    def __post_init__(self):
        if self.city + self.county + self.region != 100:
            raise ValueError(f"Mix percentages must sum to 100, got {self.city}/{self.county}/{self.region}")

    def percentage(self, level: LocationLevel) -> int:
        return getattr(self, level.value)

    def to_dict(self) -> Dict[str, int]:
        return {"city": self.city, "county": self.county, "region": self.region}


MIX_CONFIGS: Dict[LocationLevel, MixConfig] = {
    LocationLevel.CITY: MixConfig(city=80, county=15, region=5),
    LocationLevel.COUNTY: MixConfig(city=0, county=85, region=15),
    LocationLevel.REGION: MixConfig(city=0, county=0, region=100),
    LocationLevel.NONE: MixConfig(city=0, county=0, region=100),
}


def mix_config_for(level: LocationLevel) -> MixConfig:
    return MIX_CONFIGS[level]


@dataclass
class MixStats:
    target: MixConfig
    counts: Dict[str, int] = field(default_factory=dict)
    total: int = 0

    @classmethod
    def from_items(cls, target: MixConfig, items: List[ContentItem]) -> "MixStats":
        counts = {level.value: 0 for level in TIER_ORDER}
        for it in items:
            level = it.location_level or LocationLevel.REGION
            counts[level.value] += 1
        return cls(target=target, counts=counts, total=len(items))

    def to_dict(self) -> Dict:
        return {"target_percentages": self.target.to_dict(), "actual_counts": dict(self.counts), "total": self.total}


@dataclass
class MixResult:
    items: List[ContentItem]
    level: LocationLevel
    stats: MixStats


# ---------- Specificity ----------

def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def resolve_specificity(context: UserLocationContext) -> LocationLevel:
    """The finest non-empty field wins."""
    if _clean(context.city):
        return LocationLevel.CITY
    if _clean(context.county):
        return LocationLevel.COUNTY
    if _clean(context.region):
        return LocationLevel.REGION
    return LocationLevel.NONE


# ---------- Tier filtering ----------

def _normalize_county(name: Optional[str]) -> str:
    n = _clean(name).casefold()
    for prefix in _COUNTY_PREFIXES:
        if n.startswith(prefix):
            n = n[len(prefix):]
    if n.endswith(_COUNTY_SUFFIX):
        n = n[: -len(_COUNTY_SUFFIX)]
    return n.strip()


def _matches_place(tag: str, text: str, wanted: str) -> bool:
    # An explicit tag is authoritative; free-text search only for untagged items
    if tag:
        return tag == wanted
    return wanted in text


def _dedupe(items: Iterable[ContentItem]) -> List[ContentItem]:
    seen: set[str] = set()
    out: List[ContentItem] = []
    for it in items:
        if it.id in seen:
            continue
        seen.add(it.id)
        out.append(it)
    return out


def filter_tiers(items: Iterable[ContentItem], context: UserLocationContext) -> Dict[LocationLevel, List[ContentItem]]:
    """
    Split the pool into city / county / region candidates.

    Every item lands in at most one tier; finer tiers claim first. Items
    tagged with a region other than the requested one are dropped, untagged
    items are trusted to belong to it.
    """
    city = _clean(context.city).casefold()
    county = _normalize_county(context.county)
    region = _clean(context.region).casefold()

    tiers: Dict[LocationLevel, List[ContentItem]] = {level: [] for level in TIER_ORDER}
    for it in _dedupe(items):
        # eligibility is decided once, before any tier looks at the item
        if region and it.region is not None and _clean(it.region).casefold() != region:
            continue
        text = it.search_text
        if city and _matches_place(_clean(it.city).casefold(), text, city):
            tiers[LocationLevel.CITY].append(it)
        elif county and _matches_place(_normalize_county(it.county), text, county):
            tiers[LocationLevel.COUNTY].append(it)
        else:
            tiers[LocationLevel.REGION].append(it)
    return tiers


# ---------- Quotas ----------

def allocate_quotas(limit: int, config: MixConfig, available: Dict[LocationLevel, int]) -> Dict[LocationLevel, int]:
    """
    Integer quota per tier for a feed of `limit` items.

    A tier that cannot fill its quota hands the deficit to the next coarser
    tier. The coarsest tier keeps whatever deficit reaches it, so its quota
    may exceed what it has; the caller tops up from leftovers.
    """
    limit = max(0, limit)
    city_q = round_half_up(limit * config.city / 100)
    county_q = min(round_half_up(limit * config.county / 100), limit - city_q)
    quotas = {
        LocationLevel.CITY: city_q,
        LocationLevel.COUNTY: county_q,
        LocationLevel.REGION: max(0, limit - city_q - county_q),
    }

    carry = 0
    coarsest = TIER_ORDER[-1]
    for level in TIER_ORDER:
        wanted = quotas[level] + carry
        if level is coarsest:
            quotas[level] = wanted
            break
        quotas[level] = min(wanted, available.get(level, 0))
        carry = wanted - quotas[level]
    return quotas


# ---------- Mixing ----------

def _newest_first(items: Iterable[ContentItem]) -> List[ContentItem]:
    return sorted(items, key=lambda it: it.published_ms, reverse=True)


def mix_local_content(
    items: Iterable[ContentItem],
    context: UserLocationContext,
    limit: int = 50,
    rng: Optional[random.Random] = None,
) -> MixResult:
    level = resolve_specificity(context)
    config = mix_config_for(level)
    if limit <= 0:
        return MixResult(items=[], level=level, stats=MixStats.from_items(config, []))

    rng = rng or random.Random()
    tiers = filter_tiers(items, context)
    quotas = allocate_quotas(limit, config, {lvl: len(pool) for lvl, pool in tiers.items()})
    logger.debug(
        "MIX_TIERS",
        extra={
            "level": level.value,
            "available": {lvl.value: len(pool) for lvl, pool in tiers.items()},
            "quotas": {lvl.value: q for lvl, q in quotas.items()},
        },
    )

    selected: List[ContentItem] = []
    leftovers: Dict[LocationLevel, List[ContentItem]] = {}
    for tier in TIER_ORDER:
        pool = list(tiers[tier])
        rng.shuffle(pool)
        quota = quotas[tier]
        selected.extend(replace(it, location_level=tier) for it in pool[:quota])
        leftovers[tier] = pool[quota:]

    shortfall = limit - len(selected)
    if shortfall > 0:
        for tier in reversed(TIER_ORDER):
            extra = _newest_first(leftovers[tier])[:shortfall]
            selected.extend(replace(it, location_level=tier) for it in extra)
            shortfall -= len(extra)
            if shortfall <= 0:
                break

    result = _newest_first(selected)[:limit]
    stats = MixStats.from_items(config, result)
    logger.info(f"MIX_DONE level={level.value} total={stats.total} counts={stats.counts}")
    return MixResult(items=result, level=level, stats=stats)
