"""
ratios.py
=========
Content-type ratio helpers.

A user's feed is a blend of three pools (general / local / sport) whose
percentages always add up to 100. The settings slider edits either a
two-way pair (local vs. sport) or one value of the three-way split, and
the other values are derived here so the total never drifts.

Everything in this module is pure; persistence lives in prefs_store.py.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, List, Sequence, Tuple, TypeVar
import math

T = TypeVar("T")

RATIO_FIELDS = ("general", "local", "sport")


def round_half_up(value: float) -> int:
    # builtin round() is banker's rounding; 2.5 -> 3 here
    return int(math.floor(value + 0.5))


def clamp_percent(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


@dataclass(frozen=True)
class RatioPair:
    local: int
    sport: int

    @classmethod
    def from_local(cls, value: float) -> "RatioPair":
        local = clamp_percent(value)
        return cls(local=local, sport=100 - local)

    @classmethod
    def from_sport(cls, value: float) -> "RatioPair":
        sport = clamp_percent(value)
        return cls(local=100 - sport, sport=sport)


@dataclass(frozen=True)
class ContentRatios:
    general: int = 40
    local: int = 35
    sport: int = 25

    @property
    def total(self) -> int:
        return self.general + self.local + self.sport

    @property
    def is_balanced(self) -> bool:
        return self.total == 100

    @classmethod
    def from_pair(cls, pair: RatioPair) -> "ContentRatios":
        return cls(general=0, local=pair.local, sport=pair.sport)

    @classmethod
    def clamped(cls, general: float, local: float, sport: float) -> "ContentRatios":
        return cls(general=clamp_percent(general), local=clamp_percent(local), sport=clamp_percent(sport))

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


DEFAULT_RATIOS = ContentRatios()


def balance_ratios(changed_value: float, other_a: float, other_b: float) -> Tuple[int, int]:
    """
    Split what is left after `changed_value` across two other ratios,
    keeping their mutual proportion. With no prior weight on either side
    the remainder is halved (the first one gets the odd point).
    """
    remaining = 100 - clamp_percent(changed_value)
    other_sum = other_a + other_b

    if other_sum <= 0:
        half = round_half_up(remaining / 2)
        return half, remaining - half

    new_a = round_half_up((other_a / other_sum) * remaining)
    new_b = remaining - new_a
    return max(0, new_a), max(0, new_b)


def rebalance(ratios: ContentRatios, field: str, value: float) -> ContentRatios:
    """Hold `field` at `value` and redistribute the rest over the other two."""
    if field not in RATIO_FIELDS:
        raise ValueError(f"Unknown ratio field: {field!r}")

    fixed = clamp_percent(value)
    others = [f for f in RATIO_FIELDS if f != field]
    a, b = balance_ratios(fixed, getattr(ratios, others[0]), getattr(ratios, others[1]))
    return ContentRatios(**{field: fixed, others[0]: a, others[1]: b})


def interleave_by_ratios(
    general: Sequence[T],
    local: Sequence[T],
    sport: Sequence[T],
    target_count: int,
    ratios: ContentRatios,
) -> List[T]:
    """
    Interleave three pools so that every prefix of the output tracks the
    requested ratios as closely as the pools allow.

    Each pool first contributes at most its quota; then at every step the
    pool that is furthest behind its expected share is drawn from.
    """
    if target_count <= 0:
        return []

    general_count = round_half_up(ratios.general / 100 * target_count)
    local_count = round_half_up(ratios.local / 100 * target_count)
    sport_count = max(0, target_count - general_count - local_count)

    pools = [
        {"items": list(general[:general_count]), "ratio": ratios.general, "index": 0},
        {"items": list(local[:local_count]), "ratio": ratios.local, "index": 0},
        {"items": list(sport[:sport_count]), "ratio": ratios.sport, "index": 0},
    ]

    result: List[T] = []
    for step in range(target_count):
        best_pool = None
        best_score = -math.inf
        for pool in pools:
            if pool["index"] >= len(pool["items"]):
                continue
            expected = pool["ratio"] / 100 * (step + 1)
            score = expected - pool["index"]
            if score > best_score:
                best_score = score
                best_pool = pool

        if best_pool is None:
            break
        result.append(best_pool["items"][best_pool["index"]])
        best_pool["index"] += 1

    return result


def interleave_by_ratio(
    local: Sequence[T],
    sport: Sequence[T],
    target_count: int,
    local_ratio: float = 60,
) -> List[T]:
    """Two-pool form: local vs. sport, no general content."""
    pair = RatioPair.from_local(local_ratio)
    return interleave_by_ratios([], local, sport, target_count, ContentRatios.from_pair(pair))
