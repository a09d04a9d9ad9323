"""Shared fixtures: a scripted in-memory backend and payload builders."""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from workbench.api.base import BenchmarkBackend
from workbench.core.config import PollingConfig, Settings
from workbench.core.errors import WorkbenchError
from workbench.core.schemas import (
    BenchmarkHistoryItem,
    BenchmarkJob,
    BenchmarkJobSummary,
    BenchmarkRequest,
    BenchmarkResult,
    CreatePromptRequest,
    EmbeddingStatus,
    EvaluationScore,
    JobStatus,
    ModelComparisonStats,
    ModelConfig,
    ModelInfo,
    ModelResult,
    Page,
    PromptTemplate,
    PurchaseInfo,
    QuestionResult,
    RagChunk,
    RagSearchResult,
    UpdatePromptRequest,
)

StatusStep = BenchmarkJob | Exception


class ScriptedBackend(BenchmarkBackend):
    """Plays back a fixed sequence of status responses.

    The last step repeats once the script is exhausted. Exceptions in the
    script are raised instead of returned.
    """

    def __init__(
        self,
        statuses: list[StatusStep],
        result: BenchmarkResult | Exception | None = None,
        job_id: str = "job-1",
    ) -> None:
        self.statuses = list(statuses)
        self.result = result
        self.job_id = job_id
        self.status_calls = 0
        self.result_calls = 0
        self.requests: list[BenchmarkRequest] = []
        self.history_pages: list[Page[BenchmarkJobSummary]] = []
        self.history_items: dict[str, list[BenchmarkHistoryItem]] = {}
        self.history_page_calls: list[int] = []
        self.prompts: dict[int, PromptTemplate] = {}
        self.chunks: dict[str, list[RagChunk]] = {}
        # Set to hold status requests open until the event fires.
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def start_benchmark(self, request: BenchmarkRequest) -> str:
        self.requests.append(request)
        return self.job_id

    async def get_status(self, job_id: str) -> BenchmarkJob:
        self.status_calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        step = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(step, Exception):
            raise step
        return step

    async def get_result(self, job_id: str) -> BenchmarkResult:
        self.result_calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        if self.result is None:
            msg = "no result scripted"
            raise RuntimeError(msg)
        return self.result

    async def get_history(self, page: int = 0, size: int = 20) -> Page[BenchmarkJobSummary]:
        self.history_page_calls.append(page)
        if page < len(self.history_pages):
            return self.history_pages[page]
        return Page[BenchmarkJobSummary](content=[], number=page, last=True)

    async def get_history_by_job(self, job_id: str) -> list[BenchmarkHistoryItem]:
        return list(self.history_items.get(job_id, []))

    async def get_model_comparison(self, days: int = 30) -> list[ModelComparisonStats]:
        return []

    async def get_history_by_model(
        self,
        provider: str,
        model_name: str,
        page: int = 0,
        size: int = 20,
    ) -> Page[BenchmarkHistoryItem]:
        return Page[BenchmarkHistoryItem]()

    async def get_available_models(self) -> list[ModelInfo]:
        return [ModelInfo(provider="openai", name="gpt-4o", display_name="GPT-4o")]

    async def get_prompts(self) -> list[PromptTemplate]:
        return list(self.prompts.values())

    async def create_prompt(self, request: CreatePromptRequest) -> PromptTemplate:
        version = 1 + max(
            (p.version for p in self.prompts.values() if p.prompt_type is request.prompt_type),
            default=0,
        )
        prompt = PromptTemplate(
            id=max(self.prompts, default=0) + 1,
            prompt_type=request.prompt_type,
            version=version,
            name=request.name or "",
            content=request.content,
            description=request.description or "",
        )
        self.prompts[prompt.id] = prompt
        return prompt

    async def update_prompt(self, prompt_id: int, request: UpdatePromptRequest) -> PromptTemplate:
        changes = request.model_dump(exclude_none=True)
        self.prompts[prompt_id] = self.prompts[prompt_id].model_copy(update=changes)
        return self.prompts[prompt_id]

    async def activate_prompt(self, prompt_id: int) -> None:
        target = self.prompts[prompt_id]
        for pid, prompt in self.prompts.items():
            if prompt.prompt_type is target.prompt_type:
                self.prompts[pid] = prompt.model_copy(update={"is_active": pid == prompt_id})

    async def delete_prompt(self, prompt_id: int) -> None:
        del self.prompts[prompt_id]

    async def check_embedding(self, resume_id: str) -> EmbeddingStatus:
        chunks = self.chunks.get(resume_id, [])
        return EmbeddingStatus(exists=bool(chunks), chunk_count=len(chunks))

    async def search_embedding(self, resume_id: str, query: str) -> RagSearchResult:
        chunks = self.chunks.get(resume_id, [])
        return RagSearchResult(resume_id=resume_id, query=query, chunks=chunks)


class Recorder:
    """Collects every callback a polling loop delivers."""

    def __init__(self) -> None:
        self.progress: list[BenchmarkJob] = []
        self.completed: list[Any] = []
        self.errors: list[WorkbenchError] = []

    def on_progress(self, job: BenchmarkJob) -> None:
        self.progress.append(job)

    def on_complete(self, payload: Any) -> None:
        self.completed.append(payload)

    def on_error(self, error: WorkbenchError) -> None:
        self.errors.append(error)

    @property
    def statuses(self) -> list[JobStatus]:
        return [job.status for job in self.progress]


def _job(
    status: JobStatus,
    percentage: float = 0.0,
    *,
    job_id: str = "job-1",
    message: str = "",
    error_message: str | None = None,
) -> BenchmarkJob:
    return BenchmarkJob(
        job_id=job_id,
        status=status,
        progress_message=message or status.value.lower(),
        progress_percentage=percentage,
        total_models=2,
        total_questions_per_model=3,
        error_message=error_message,
    )


def _evaluation(total: float = 80.0, sub: float = 8.0) -> EvaluationScore:
    return EvaluationScore(
        resume_relevance=sub,
        question_depth=sub,
        practical_realism=sub,
        guide_quality=sub,
        diversity=sub,
        total_score=total,
    )


def _question(number: int, total: float | None = 80.0, **overrides: object) -> QuestionResult:
    defaults: dict[str, object] = {
        "question_number": number,
        "question_type": "technical",
        "question_topic": f"topic {number}",
        "question_content": f"Question {number}?",
        "evaluation": _evaluation(total) if total is not None else None,
        "latency_ms": 1000.0,
        "input_tokens": 1000,
        "output_tokens": 500,
    }
    defaults.update(overrides)
    return QuestionResult(**defaults)  # type: ignore[arg-type]


def _model_result(
    name: str,
    totals: list[float | None] | None = None,
    *,
    provider: str = "openai",
    error: str | None = None,
) -> ModelResult:
    model = ModelConfig(provider=provider, name=name)
    if error is not None:
        return ModelResult(model=model, error=error)
    totals = [80.0, 60.0, 40.0] if totals is None else totals
    return ModelResult(
        model=model,
        questions=[_question(i, t) for i, t in enumerate(totals, start=1)],
    )


def _result(*models: ModelResult) -> BenchmarkResult:
    return BenchmarkResult(
        purchase_info=PurchaseInfo(purchase_id="purchase-1", member_id="m-1", resume_id="r-1"),
        results=list(models),
    )


def _history_item(
    provider: str,
    name: str,
    created_at: datetime,
    *,
    score: float | None = 70.0,
    item_id: int = 1,
    job_id: str = "job-1",
    **overrides: object,
) -> BenchmarkHistoryItem:
    defaults: dict[str, object] = {
        "id": item_id,
        "job_id": job_id,
        "model_provider": provider,
        "model_name": name,
        "question_number": 1,
        "eval_total_score": score,
        "latency_ms": 1000.0,
        "input_tokens": 100,
        "output_tokens": 50,
        "estimated_cost_usd": 0.0025,
        "created_at": created_at,
    }
    defaults.update(overrides)
    return BenchmarkHistoryItem(**defaults)  # type: ignore[arg-type]


@pytest.fixture
def make_job() -> Callable[..., BenchmarkJob]:
    return _job


@pytest.fixture
def make_question() -> Callable[..., QuestionResult]:
    return _question


@pytest.fixture
def make_model_result() -> Callable[..., ModelResult]:
    return _model_result


@pytest.fixture
def make_result() -> Callable[..., BenchmarkResult]:
    return _result


@pytest.fixture
def make_history_item() -> Callable[..., BenchmarkHistoryItem]:
    return _history_item


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def fast_polling() -> PollingConfig:
    return PollingConfig(interval_seconds=0.0, max_consecutive_failures=3)


@pytest.fixture
def settings(fast_polling: PollingConfig) -> Settings:
    return Settings(polling=fast_polling)
