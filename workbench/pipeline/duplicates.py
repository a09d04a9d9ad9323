"""Duplicate-question classification.

The backend supplies three similarity signals plus a pre-combined
overall_score; this module only normalizes and buckets them:

  overall_score < moderate_threshold               → LOW
  moderate_threshold <= score < high_threshold     → MODERATE
  overall_score >= high_threshold                  → HIGH

has_duplicate is derived from the match list, never trusted from upstream.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from workbench.core.config import DuplicateConfig
from workbench.core.schemas import DuplicateMatch, DuplicateScore

logger = logging.getLogger(__name__)


class DetectionStatus(str, Enum):
    NOT_RUN = "not_run"
    CLEAR = "clear"
    DUPLICATE = "duplicate"


class Severity(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class DuplicateVerdict(BaseModel):
    """Presentation-ready duplicate classification for one question."""

    model_config = ConfigDict(frozen=True)

    status: DetectionStatus
    severity: Severity | None = None
    overall_score: float | None = None
    topic_similarity: float | None = None
    semantic_similarity: float | None = None
    keyword_overlap: float | None = None
    matches: list[DuplicateMatch] = Field(default_factory=list)

    @property
    def has_duplicate(self) -> bool | None:
        """None when detection did not run for the question."""
        if self.status is DetectionStatus.NOT_RUN:
            return None
        return self.status is DetectionStatus.DUPLICATE


def normalize_duplicate_score(score: DuplicateScore) -> DuplicateScore:
    """Return a copy whose has_duplicate agrees with its ranked match list."""
    ranked = sorted(score.matches, key=lambda m: m.similarity, reverse=True)
    has_duplicate = len(ranked) > 0
    if has_duplicate != score.has_duplicate:
        logger.debug(
            "Duplicate flag disagrees with matches (flag=%s, matches=%d), using matches",
            score.has_duplicate, len(ranked),
        )
    return score.model_copy(update={"has_duplicate": has_duplicate, "matches": ranked})


def severity_for(overall_score: float, config: DuplicateConfig) -> Severity:
    if overall_score >= config.high_threshold:
        return Severity.HIGH
    if overall_score >= config.moderate_threshold:
        return Severity.MODERATE
    return Severity.LOW


def classify_duplicate(
    score: DuplicateScore | None,
    config: DuplicateConfig,
) -> DuplicateVerdict:
    """Classify one question's duplicate signal.

    Args:
        score: Raw backend signal, or None if detection was not run.
        config: Severity thresholds.

    Returns:
        DuplicateVerdict with matches ranked by similarity (desc).
    """
    if score is None:
        return DuplicateVerdict(status=DetectionStatus.NOT_RUN)

    normalized = normalize_duplicate_score(score)
    status = DetectionStatus.DUPLICATE if normalized.has_duplicate else DetectionStatus.CLEAR
    return DuplicateVerdict(
        status=status,
        severity=severity_for(normalized.overall_score, config),
        overall_score=normalized.overall_score,
        topic_similarity=normalized.topic_similarity,
        semantic_similarity=normalized.semantic_similarity,
        keyword_overlap=normalized.keyword_overlap,
        matches=normalized.matches,
    )
