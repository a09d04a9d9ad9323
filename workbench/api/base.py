"""Abstract base class for the benchmark job backend."""

from abc import ABC, abstractmethod

from workbench.core.schemas import (
    BenchmarkHistoryItem,
    BenchmarkJob,
    BenchmarkJobSummary,
    BenchmarkRequest,
    BenchmarkResult,
    CreatePromptRequest,
    EmbeddingStatus,
    ModelComparisonStats,
    ModelInfo,
    Page,
    PromptTemplate,
    RagSearchResult,
    UpdatePromptRequest,
)


class BenchmarkBackend(ABC):
    """Operations the workbench needs from the benchmark job service."""

    @abstractmethod
    async def start_benchmark(self, request: BenchmarkRequest) -> str:
        """Submit a run and return its job id."""

    @abstractmethod
    async def get_status(self, job_id: str) -> BenchmarkJob:
        """Return the current progress snapshot for a job."""

    @abstractmethod
    async def get_result(self, job_id: str) -> BenchmarkResult:
        """Return the full result of a completed job."""

    @abstractmethod
    async def get_history(self, page: int = 0, size: int = 20) -> Page[BenchmarkJobSummary]:
        """Return one page of past runs, newest first."""

    @abstractmethod
    async def get_history_by_job(self, job_id: str) -> list[BenchmarkHistoryItem]:
        """Return the stored question rows of one past run."""

    @abstractmethod
    async def get_model_comparison(self, days: int = 30) -> list[ModelComparisonStats]:
        """Return backend-computed per-model statistics for the last ``days`` days."""

    @abstractmethod
    async def get_history_by_model(
        self,
        provider: str,
        model_name: str,
        page: int = 0,
        size: int = 20,
    ) -> Page[BenchmarkHistoryItem]:
        """Return one page of stored question rows for a single model."""

    @abstractmethod
    async def get_available_models(self) -> list[ModelInfo]:
        """Return the models the backend can benchmark."""

    # -- prompt templates ----------------------------------------------------

    @abstractmethod
    async def get_prompts(self) -> list[PromptTemplate]:
        """Return every stored prompt template."""

    @abstractmethod
    async def create_prompt(self, request: CreatePromptRequest) -> PromptTemplate:
        """Store a new, inactive template version."""

    @abstractmethod
    async def update_prompt(self, prompt_id: int, request: UpdatePromptRequest) -> PromptTemplate:
        """Edit a template's name, content or description."""

    @abstractmethod
    async def activate_prompt(self, prompt_id: int) -> None:
        """Make a template the active one for its prompt type."""

    @abstractmethod
    async def delete_prompt(self, prompt_id: int) -> None:
        """Delete a template."""

    # -- resume embeddings ---------------------------------------------------

    @abstractmethod
    async def check_embedding(self, resume_id: str) -> EmbeddingStatus:
        """Report whether a resume has been embedded for retrieval."""

    @abstractmethod
    async def search_embedding(self, resume_id: str, query: str) -> RagSearchResult:
        """Return the resume chunks most similar to ``query``."""
