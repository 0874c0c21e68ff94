"""
Directional preference scoring ("more" / "less" / "similar" / "same").

Two strategies are supported and selected through ``MatchingConfig.directional_strategy``:

* ``hard``: the ordered relation between the two answers either holds (1.0) or
  does not (0.0).
* ``soft``: the raw numeric similarity of the two answers is scaled by an
  alignment multiplier (alpha when aligned, 1.0 when neutral, beta when in
  conflict) and capped at 1.0.
"""
from __future__ import annotations

from typing import Callable

from ..config import DirectionalStrategy, MatchingConfig
from ..models import NoPreference, Preference, Specific
from .responses import MalformedResponseError

DIRECTIONS = ("more", "less", "similar", "same")


def _direction(preference: Preference) -> str:
    value = preference.value if isinstance(preference, Specific) else None
    if value not in DIRECTIONS:
        raise MalformedResponseError(f"unknown directional preference {value!r}")
    return value


def hard_satisfaction(own: float, partner: float, direction: str, cfg: MatchingConfig) -> float:
    diff = partner - own
    if direction == "more":
        return 1.0 if diff > 0 else 0.0
    if direction == "less":
        return 1.0 if diff < 0 else 0.0
    if direction == "same":
        return 1.0 if diff == 0 else 0.0
    return 1.0 if abs(diff) <= 1 else 0.0


def alignment_multiplier(own: float, partner: float, direction: str, cfg: MatchingConfig) -> float:
    diff = partner - own
    gap = abs(diff)
    if direction == "more":
        if diff > 0:
            return cfg.directional_alpha
        return 1.0 if diff == 0 else cfg.directional_beta
    if direction == "less":
        if diff < 0:
            return cfg.directional_alpha
        return 1.0 if diff == 0 else cfg.directional_beta
    if direction == "similar":
        if gap <= 1:
            return cfg.directional_alpha
        return 1.0 if gap == 2 else cfg.directional_beta
    if gap == 0:
        return cfg.directional_alpha
    return 1.0 if gap == 1 else cfg.directional_beta


def soft_satisfaction(own: float, partner: float, direction: str, cfg: MatchingConfig) -> float:
    raw = 1.0 - abs(own - partner) / (cfg.likert_max - cfg.likert_min)
    return min(1.0, max(0.0, raw * alignment_multiplier(own, partner, direction, cfg)))


DIRECTIONAL_STRATEGIES: dict[DirectionalStrategy, Callable[[float, float, str, MatchingConfig], float]] = {
    DirectionalStrategy.HARD: hard_satisfaction,
    DirectionalStrategy.SOFT: soft_satisfaction,
}


def directional_satisfaction(own: float, partner: float, preference: Preference, cfg: MatchingConfig) -> float:
    """One respondent's satisfaction with a partner's answer on an ordered scale."""
    if isinstance(preference, NoPreference):
        return 1.0
    strategy = DIRECTIONAL_STRATEGIES[cfg.directional_strategy]
    return strategy(own, partner, _direction(preference), cfg)
