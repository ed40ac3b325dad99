"""
Comparable Similarity Scoring

Scores every selected comparable against the subject, ranks them and
screens price-per-sqm outliers before the sales comparison weights them.

Each similarity component falls linearly from 1 (identical) to 0:
- geo: distance from the subject, 0 at 3 km
- area: built-area difference, 0 at 120 sqm
- floor: floor difference, 0 at 15 floors
- rooms: room-count difference, 0 at 5 rooms
- building: build-year difference, 0 at 60 years

Attributes the comparable does not record score NEUTRAL_SIMILARITY.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from statistics import quantiles
from typing import Final, Optional, Sequence

from .models import ComparableTransaction, SubjectProperty


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

GEO_ZERO_KM: Final = 3.0
AREA_ZERO_SQM: Final = 120.0
FLOOR_ZERO: Final = 15
ROOMS_ZERO: Final = 5.0
BUILD_YEAR_ZERO: Final = 60

NEUTRAL_SIMILARITY: Final = 0.5

GEO_WEIGHT: Final = 0.30
AREA_WEIGHT: Final = 0.25
FLOOR_WEIGHT: Final = 0.15
ROOMS_WEIGHT: Final = 0.15
BUILDING_WEIGHT: Final = 0.15

# IQR screen on price per sqm
IQR_MIN_SAMPLE: Final = 5
IQR_FENCE: Final = 1.5


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class ScoredComparable:
    """A comparable with its similarity to the subject (score 0-1)."""

    comparable: ComparableTransaction
    score: float
    geo_similarity: float
    area_similarity: float
    floor_similarity: float
    room_similarity: float
    building_similarity: float

    @property
    def price_per_sqm(self) -> float:
        return self.comparable.price_per_sqm

    @property
    def similarity_score(self) -> float:
        """Score on the 0-100 scale the sales comparison weights with."""
        return round(self.score * 100, 1)

    def to_dict(self) -> dict:
        return {
            "id": self.comparable.id,
            "score": self.score,
            "geo_similarity": self.geo_similarity,
            "area_similarity": self.area_similarity,
            "floor_similarity": self.floor_similarity,
            "room_similarity": self.room_similarity,
            "building_similarity": self.building_similarity,
            "price_per_sqm": self.price_per_sqm,
        }


@dataclass(frozen=True)
class ScreeningResult:
    """
    Comparables ready for the sales comparison.

    Input order is kept. Price outliers are deselected rather than
    removed; caller-supplied similarity scores are left alone.
    """

    comparables: tuple[ComparableTransaction, ...]
    outlier_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "comparables": [c.to_dict() for c in self.comparables],
            "outlier_ids": list(self.outlier_ids),
        }


# =============================================================================
# Scoring
# =============================================================================


def _linear(difference: float, zero_at: float) -> float:
    return min(1.0, max(0.0, 1 - abs(difference) / zero_at))


def score_comparable(subject: SubjectProperty, comp: ComparableTransaction) -> ScoredComparable:
    """Score one comparable against the subject."""
    d = subject.details

    geo = _linear(comp.distance, GEO_ZERO_KM) if comp.distance is not None else NEUTRAL_SIMILARITY
    area = _linear(d.built_area - comp.built_area, AREA_ZERO_SQM)
    floor = _linear(d.floor - comp.floor, FLOOR_ZERO) if comp.floor is not None else NEUTRAL_SIMILARITY
    rooms = _linear(d.rooms - comp.rooms, ROOMS_ZERO) if comp.rooms > 0 else NEUTRAL_SIMILARITY
    building = (
        _linear(d.build_year - comp.build_year, BUILD_YEAR_ZERO)
        if comp.build_year is not None
        else NEUTRAL_SIMILARITY
    )

    score = (
        GEO_WEIGHT * geo
        + AREA_WEIGHT * area
        + FLOOR_WEIGHT * floor
        + ROOMS_WEIGHT * rooms
        + BUILDING_WEIGHT * building
    )

    return ScoredComparable(
        comparable=comp,
        score=min(1.0, max(0.0, score)),
        geo_similarity=geo,
        area_similarity=area,
        floor_similarity=floor,
        room_similarity=rooms,
        building_similarity=building,
    )


def rank_comparables(
    subject: SubjectProperty,
    comparables: Sequence[ComparableTransaction],
    top_k: Optional[int] = None,
) -> list[ScoredComparable]:
    """
    Score and sort comparables, most similar first.

    Args:
        subject: Property being valued
        comparables: Candidates to score
        top_k: Keep only the best k (at least one); None keeps all
    """
    ranked = sorted(
        (score_comparable(subject, c) for c in comparables),
        key=lambda s: s.score,
        reverse=True,
    )
    if top_k is not None:
        ranked = ranked[:max(1, top_k)]
    return ranked


def filter_price_outliers_by_iqr(
    scored: Sequence[ScoredComparable],
) -> tuple[list[ScoredComparable], list[ScoredComparable]]:
    """
    Split comparables on the 1.5 x IQR fences of price per sqm.

    Fewer than IQR_MIN_SAMPLE usable prices leaves everything kept.

    Returns:
        Tuple of (kept, outliers)
    """
    prices = sorted(
        s.price_per_sqm for s in scored if math.isfinite(s.price_per_sqm) and s.price_per_sqm > 0
    )
    if len(prices) < IQR_MIN_SAMPLE:
        return list(scored), []

    q1, _, q3 = quantiles(prices, n=4, method="inclusive")
    iqr = q3 - q1
    low, high = q1 - IQR_FENCE * iqr, q3 + IQR_FENCE * iqr

    kept = [s for s in scored if low <= s.price_per_sqm <= high]
    outliers = [s for s in scored if not low <= s.price_per_sqm <= high]
    return kept, outliers


def screen_comparables(
    subject: SubjectProperty,
    comparables: Sequence[ComparableTransaction],
) -> ScreeningResult:
    """
    Score selected comparables and deselect price outliers.

    Unscored comparables receive a similarity_score; unselected ones pass
    through untouched.
    """
    scored = [score_comparable(subject, c) for c in comparables if c.selected]
    _, outliers = filter_price_outliers_by_iqr(scored)
    outlier_ids = {s.comparable.id for s in outliers}
    scores = {s.comparable.id: s.similarity_score for s in scored}

    screened = []
    for comp in comparables:
        if not comp.selected:
            screened.append(comp)
        elif comp.id in outlier_ids:
            screened.append(replace(comp, selected=False))
        elif comp.similarity_score is None:
            screened.append(replace(comp, similarity_score=scores[comp.id]))
        else:
            screened.append(comp)

    if outlier_ids:
        logger.warning(
            "Deselected %d price-per-sqm outliers for %s: %s",
            len(outlier_ids), subject.id, ", ".join(sorted(outlier_ids)),
        )
    logger.debug("Scored %d comparables for %s", len(scored), subject.id)

    return ScreeningResult(
        comparables=tuple(screened),
        outlier_ids=tuple(s.comparable.id for s in outliers),
    )
