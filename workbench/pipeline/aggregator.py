"""Evaluation aggregation: per-question scores → per-model summaries → comparison rows.

Pure reductions, no I/O. Floating-point sums use math.fsum so results do not
depend on input order. An average with nothing to average is None, never 0.
"""

import logging
import math
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from workbench.core.config import CostRates, DuplicateConfig
from workbench.core.schemas import (
    Dimension,
    ModelConfig,
    ModelResult,
    QuestionResult,
    Summary,
)
from workbench.pipeline.duplicates import (
    DuplicateVerdict,
    classify_duplicate,
    normalize_duplicate_score,
)

logger = logging.getLogger(__name__)


class QuestionReport(BaseModel):
    """One question with its estimated cost and duplicate verdict."""

    model_config = ConfigDict(frozen=True)

    question: QuestionResult
    cost_usd: float
    duplicate: DuplicateVerdict


class ModelReport(BaseModel):
    """Aggregated outcome for one participant. error marks a failed model."""

    model_config = ConfigDict(frozen=True)

    model: ModelConfig
    summary: Summary
    questions: list[QuestionReport] = Field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ComparisonRow(BaseModel):
    """One model's line in the cross-model comparison table."""

    model_config = ConfigDict(frozen=True)

    provider: str
    model_name: str
    avg_total_score: float | None = None
    averages: dict[Dimension, float | None] = Field(default_factory=dict)
    avg_latency_ms: float | None = None
    total_cost_usd: float = 0.0
    success_count: int = 0
    failure_count: int = 0
    error: str | None = None


class RadarPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    model_name: str
    value: float


class RadarSeries(BaseModel):
    """All models' averages on one dimension; undefined averages are omitted."""

    model_config = ConfigDict(frozen=True)

    dimension: Dimension
    label: str
    points: list[RadarPoint] = Field(default_factory=list)


def question_cost(question: QuestionResult, rates: CostRates) -> float:
    """Estimate the USD cost of one question from its token counts."""
    return (
        question.input_tokens * rates.input_per_token
        + question.output_tokens * rates.output_per_token
    )


def mean(values: Iterable[float]) -> float | None:
    """Arithmetic mean, or None for an empty input."""
    items = list(values)
    if not items:
        return None
    return math.fsum(items) / len(items)


def summarize_questions(questions: list[QuestionResult], rates: CostRates) -> Summary:
    """Reduce a model's questions into a Summary.

    Score averages use evaluated questions only; latency and cost use all.
    """
    evaluated = [q.evaluation for q in questions if q.evaluation is not None]

    def dimension_mean(dimension: Dimension) -> float | None:
        return mean(e.score(dimension) for e in evaluated)

    return Summary(
        avg_total_score=mean(e.total_score for e in evaluated),
        avg_resume_relevance=dimension_mean(Dimension.RESUME_RELEVANCE),
        avg_question_depth=dimension_mean(Dimension.QUESTION_DEPTH),
        avg_practical_realism=dimension_mean(Dimension.PRACTICAL_REALISM),
        avg_guide_quality=dimension_mean(Dimension.GUIDE_QUALITY),
        avg_diversity=dimension_mean(Dimension.DIVERSITY),
        avg_latency_ms=mean(q.latency_ms for q in questions),
        total_cost_usd=math.fsum(question_cost(q, rates) for q in questions),
        success_count=len(evaluated),
        failure_count=len(questions) - len(evaluated),
    )


def failed_summary() -> Summary:
    """Placeholder summary for a participant whose whole run errored."""
    return Summary(success_count=0, failure_count=1)


def summarize_model(
    result: ModelResult,
    rates: CostRates,
    duplicates: DuplicateConfig,
) -> ModelReport:
    """Build the ModelReport for one participant.

    The backend's own summary is ignored; everything is recomputed from
    the question list.
    """
    if result.error is not None:
        logger.info("Model %s failed: %s", result.model.label, result.error)
        return ModelReport(model=result.model, summary=failed_summary(), error=result.error)

    reports = [
        QuestionReport(
            question=_with_normalized_duplicates(q),
            cost_usd=question_cost(q, rates),
            duplicate=classify_duplicate(q.duplicate_score, duplicates),
        )
        for q in sorted(result.questions, key=lambda q: q.question_number)
    ]
    return ModelReport(
        model=result.model,
        summary=summarize_questions(result.questions, rates),
        questions=reports,
    )


def comparison_rows(reports: list[ModelReport]) -> list[ComparisonRow]:
    """One row per model, in submission order."""
    return [
        ComparisonRow(
            provider=r.model.provider,
            model_name=r.model.name,
            avg_total_score=r.summary.avg_total_score,
            averages={d: r.summary.average(d) for d in Dimension},
            avg_latency_ms=r.summary.avg_latency_ms,
            total_cost_usd=r.summary.total_cost_usd,
            success_count=r.summary.success_count,
            failure_count=r.summary.failure_count,
            error=r.error,
        )
        for r in reports
    ]


def radar_series(reports: list[ModelReport]) -> list[RadarSeries]:
    """One series per dimension; failed models contribute no points."""
    series: list[RadarSeries] = []
    for dimension in Dimension:
        points = []
        for r in reports:
            if r.failed:
                continue
            value = r.summary.average(dimension)
            if value is None:
                continue
            points.append(RadarPoint(model_name=r.model.name, value=value))
        series.append(RadarSeries(dimension=dimension, label=dimension.label, points=points))
    return series


def rank_rows(rows: list[ComparisonRow]) -> list[ComparisonRow]:
    """Sort by avg_total_score desc; ties keep submission order, unscored rows last."""
    indexed = sorted(
        enumerate(rows),
        key=lambda pair: (
            pair[1].avg_total_score is None,
            -(pair[1].avg_total_score or 0.0),
            pair[0],
        ),
    )
    return [row for _, row in indexed]


def _with_normalized_duplicates(question: QuestionResult) -> QuestionResult:
    if question.duplicate_score is None:
        return question
    return question.model_copy(
        update={"duplicate_score": normalize_duplicate_score(question.duplicate_score)},
    )
