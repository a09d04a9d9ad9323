"""Orchestrator: the façade the presentation layer talks to.

Data flow:
  1. submit   → structural validation, POST /start, job id
  2. observe  → JobLifecycleController polls until terminal
  3. on COMPLETED → fetch result → aggregator + duplicate classifier
  4. on_complete(AggregatedView); callers never see the raw result
"""

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from workbench.api.base import BenchmarkBackend
from workbench.core.config import Settings
from workbench.core.errors import SubmissionError, WorkbenchError
from workbench.core.schemas import (
    BenchmarkHistoryItem,
    BenchmarkJob,
    BenchmarkRequest,
    BenchmarkResult,
    ModelComparisonStats,
    ModelConfig,
    PurchaseInfo,
)
from workbench.pipeline.aggregator import (
    ComparisonRow,
    ModelReport,
    RadarSeries,
    comparison_rows,
    radar_series,
    rank_rows,
    summarize_model,
)
from workbench.pipeline.history import compare_history, not_before, window_start
from workbench.pipeline.poller import (
    ErrorCallback,
    JobLifecycleController,
    PollHandle,
    ProgressCallback,
)

logger = logging.getLogger(__name__)

ViewCallback = Callable[["AggregatedView"], None]


class AggregatedView(BaseModel):
    """Everything the presentation layer renders for one finished run.

    Recomputed from the raw result on demand; never patched in place.
    """

    model_config = ConfigDict(frozen=True)

    purchase_info: PurchaseInfo
    summaries: list[ModelReport] = Field(default_factory=list)
    comparison_rows: list[ComparisonRow] = Field(default_factory=list)
    radar_series: list[RadarSeries] = Field(default_factory=list)
    ranking: list[ComparisonRow] = Field(default_factory=list)

    @property
    def failed_models(self) -> list[ModelReport]:
        return [s for s in self.summaries if s.failed]


class BenchmarkOrchestrator:
    """Submits runs, observes one job at a time, and aggregates the result.

    Usage::

        orchestrator = BenchmarkOrchestrator(client, settings)
        job_id = await orchestrator.submit("purchase-1", models, question_count=3)
        handle = orchestrator.observe(job_id, on_progress, on_complete, on_error)
    """

    def __init__(
        self,
        backend: BenchmarkBackend,
        settings: Settings,
        controller: JobLifecycleController | None = None,
    ) -> None:
        self._backend = backend
        self._settings = settings
        self._controller = controller or JobLifecycleController(backend, settings.polling)

    @property
    def current_job(self) -> BenchmarkJob | None:
        return self._controller.job

    async def submit(
        self,
        purchase_id: str,
        models: list[ModelConfig],
        question_count: int,
        prompt_version: str = "v1",
    ) -> str:
        """Submit a benchmark run and return its job id.

        Any active observation is cancelled first.

        Raises:
            SubmissionError: On structural precondition failures (no models,
                non-positive question count) or if the backend rejects the start.
        """
        self._controller.cancel()
        try:
            request = BenchmarkRequest(
                purchase_id=purchase_id,
                models=models,
                question_count=question_count,
                prompt_version=prompt_version,
            )
        except ValidationError as e:
            msg = f"Invalid benchmark request: {_first_error(e)}"
            raise SubmissionError(msg) from e

        try:
            job_id = await self._backend.start_benchmark(request)
        except Exception as e:
            msg = f"Failed to start benchmark: {e}"
            raise SubmissionError(msg) from e

        logger.info(
            "Submitted job %s: %d models x %d questions (prompt %s)",
            job_id, len(models), question_count, prompt_version,
        )
        return job_id

    def observe(
        self,
        job_id: str,
        on_progress: ProgressCallback,
        on_complete: ViewCallback,
        on_error: ErrorCallback,
    ) -> PollHandle:
        """Poll ``job_id`` and deliver the aggregated view on success.

        Replaces any observation that is still active.
        """

        def deliver(result: BenchmarkResult) -> None:
            on_complete(self.get_aggregated_view(result))

        return self._controller.start(job_id, on_progress, deliver, on_error)

    def cancel(self) -> None:
        self._controller.cancel()

    def get_aggregated_view(self, result: BenchmarkResult) -> AggregatedView:
        """Reduce a raw result into summaries, comparison rows and radar series."""
        summaries = [
            summarize_model(r, self._settings.costs, self._settings.duplicates)
            for r in result.results
        ]
        rows = comparison_rows(summaries)
        return AggregatedView(
            purchase_info=result.purchase_info,
            summaries=summaries,
            comparison_rows=rows,
            radar_series=radar_series(summaries),
            ranking=rank_rows(rows),
        )

    async def run(
        self,
        purchase_id: str,
        models: list[ModelConfig],
        question_count: int,
        prompt_version: str = "v1",
        on_progress: ProgressCallback | None = None,
    ) -> AggregatedView:
        """Submit, observe until terminal, and return the aggregated view.

        Raises:
            SubmissionError: If the run could not be submitted.
            WorkbenchError: The terminal error delivered by the controller.
        """
        job_id = await self.submit(purchase_id, models, question_count, prompt_version)
        views: list[AggregatedView] = []
        errors: list[WorkbenchError] = []

        handle = self.observe(job_id, on_progress or _ignore, views.append, errors.append)
        try:
            await handle.wait()
        except asyncio.CancelledError:
            handle.cancel()
            raise

        if errors:
            raise errors[0]
        if not views:
            msg = f"Observation of job {job_id} ended without a result"
            raise WorkbenchError(msg)
        return views[0]

    async def compare_recent(
        self,
        days: int | None = None,
        now: datetime | None = None,
    ) -> list[ModelComparisonStats]:
        """Client-side per-model comparison over runs from the last ``days`` days.

        Pages through /history (newest first) until a page reaches past the
        window, then reduces every question row of the runs inside it.
        """
        days = days or self._settings.history.window_days
        size = self._settings.history.page_size
        cutoff = window_start(days, now)

        job_ids: list[str] = []
        page_number = 0
        while True:
            page = await self._backend.get_history(page_number, size)
            inside = [j for j in page.content if not_before(j.created_at, cutoff)]
            job_ids.extend(j.job_id for j in inside)
            if page.last or not page.content or len(inside) < len(page.content):
                break
            page_number += 1

        items: list[BenchmarkHistoryItem] = []
        for job_id in job_ids:
            items.extend(await self._backend.get_history_by_job(job_id))
        logger.info("Comparing %d question rows from %d runs", len(items), len(job_ids))
        return compare_history(items, days=days, now=now)


def export_view_json(view: AggregatedView) -> str:
    """Export an aggregated view as a JSON string."""
    return json.dumps(view.model_dump(mode="json"), indent=2, ensure_ascii=False)


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def _ignore(_: BenchmarkJob) -> None:
    return None
