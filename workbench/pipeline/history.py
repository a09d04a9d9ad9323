"""Time-windowed comparison over stored benchmark history.

Groups question rows by (model_provider, model_name) and reduces each group
into ModelComparisonStats. Output is sorted by identity and sums use fsum, so
any permutation of the input rows yields the same result.
"""

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone

from workbench.core.schemas import BenchmarkHistoryItem, ModelComparisonStats
from workbench.pipeline.aggregator import mean

logger = logging.getLogger(__name__)


def window_start(days: int, now: datetime | None = None) -> datetime:
    """Start of the trailing window ending at ``now``."""
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)


def within_window(
    items: list[BenchmarkHistoryItem],
    days: int,
    now: datetime | None = None,
) -> list[BenchmarkHistoryItem]:
    """Keep rows created inside the trailing window."""
    cutoff = window_start(days, now)
    return [item for item in items if not_before(item.created_at, cutoff)]


def not_before(moment: datetime, cutoff: datetime) -> bool:
    return _aware(moment) >= _aware(cutoff)


def compare_history(
    items: list[BenchmarkHistoryItem],
    days: int = 30,
    now: datetime | None = None,
) -> list[ModelComparisonStats]:
    """Per-model statistics over rows from the last ``days`` days.

    avg_total_score only counts rows that were evaluated; it is None when a
    model has no evaluated row in the window.
    """
    recent = within_window(items, days, now)
    dropped = len(items) - len(recent)
    if dropped:
        logger.debug("History comparison: %d rows outside the %d-day window", dropped, days)

    groups: dict[tuple[str, str], list[BenchmarkHistoryItem]] = defaultdict(list)
    for item in recent:
        groups[(item.model_provider, item.model_name)].append(item)

    stats: list[ModelComparisonStats] = []
    for (provider, name), rows in sorted(groups.items()):
        stats.append(
            ModelComparisonStats(
                model_provider=provider,
                model_name=name,
                avg_total_score=mean(
                    r.eval_total_score for r in rows if r.eval_total_score is not None
                ),
                avg_latency_ms=mean(r.latency_ms for r in rows),
                total_questions=len(rows),
                total_input_tokens=sum(r.input_tokens for r in rows),
                total_output_tokens=sum(r.output_tokens for r in rows),
                total_cost_usd=math.fsum(r.estimated_cost_usd for r in rows),
            ),
        )
    return stats


def _aware(moment: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
