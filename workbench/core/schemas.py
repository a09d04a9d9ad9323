"""Core data models for the benchmark workbench.

Wire types mirror the backend's camelCase JSON through an alias generator;
Python code builds them with snake_case field names.
"""

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PROMPT_VERSIONS = ("v1", "v2", "v3")

T = TypeVar("T")


class WireModel(BaseModel):
    """Frozen base for every payload exchanged with the benchmark backend."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Participants and requests
# ---------------------------------------------------------------------------


class ModelConfig(WireModel):
    """One LLM participant in a benchmark run."""

    provider: str
    name: str
    display_name: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.name}"


class ModelInfo(WireModel):
    """A model the backend offers for benchmarking."""

    provider: str
    name: str
    display_name: str = ""
    description: str = ""


class BenchmarkRequest(WireModel):
    """Payload for POST /start."""

    purchase_id: str
    models: list[ModelConfig]
    question_count: int = Field(ge=1)
    prompt_version: str = "v1"

    @field_validator("purchase_id")
    @classmethod
    def purchase_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "purchase_id must not be empty"
            raise ValueError(msg)
        return v.strip()

    @field_validator("models")
    @classmethod
    def at_least_one_model(cls, v: list[ModelConfig]) -> list[ModelConfig]:
        if not v:
            msg = "at least one model must be selected"
            raise ValueError(msg)
        return v


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class Dimension(str, Enum):
    """The five fixed evaluation axes."""

    RESUME_RELEVANCE = "resumeRelevance"
    QUESTION_DEPTH = "questionDepth"
    PRACTICAL_REALISM = "practicalRealism"
    GUIDE_QUALITY = "guideQuality"
    DIVERSITY = "diversity"

    @property
    def label(self) -> str:
        return _DIMENSION_LABELS[self]


_DIMENSION_LABELS: dict[Dimension, str] = {
    Dimension.RESUME_RELEVANCE: "Relevance",
    Dimension.QUESTION_DEPTH: "Depth",
    Dimension.PRACTICAL_REALISM: "Realism",
    Dimension.GUIDE_QUALITY: "Guide",
    Dimension.DIVERSITY: "Diversity",
}


class EvaluationScore(WireModel):
    """Judge scores for one generated question.

    Sub-scores are usually 0-10 and total_score 0-100, but only the lower
    bound is enforced. total_score is combined by the backend and treated
    as opaque here.
    """

    resume_relevance: float = Field(ge=0.0)
    question_depth: float = Field(ge=0.0)
    practical_realism: float = Field(ge=0.0)
    guide_quality: float = Field(ge=0.0)
    diversity: float = Field(ge=0.0)
    total_score: float = Field(ge=0.0)
    reasoning: dict[str, str] = Field(default_factory=dict)
    improvement_suggestions: list[str] = Field(default_factory=list)

    def score(self, dimension: Dimension) -> float:
        return EVALUATION_ACCESSORS[dimension](self)


EVALUATION_ACCESSORS: dict[Dimension, Callable[[EvaluationScore], float]] = {
    Dimension.RESUME_RELEVANCE: lambda e: e.resume_relevance,
    Dimension.QUESTION_DEPTH: lambda e: e.question_depth,
    Dimension.PRACTICAL_REALISM: lambda e: e.practical_realism,
    Dimension.GUIDE_QUALITY: lambda e: e.guide_quality,
    Dimension.DIVERSITY: lambda e: e.diversity,
}


class StarStructure(WireModel):
    situation: str = ""
    task: str = ""
    action: str = ""
    result: str = ""


class PersonaAnswers(WireModel):
    big_tech: str = ""
    unicorn: str = ""


class AnswerGuide(WireModel):
    """Model-written answer guidance attached to a question."""

    analysis: str = ""
    keywords: list[str] = Field(default_factory=list)
    star_structure: StarStructure = Field(default_factory=StarStructure)
    persona_answers: PersonaAnswers = Field(default_factory=PersonaAnswers)
    follow_up_questions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Duplicate detection
# ---------------------------------------------------------------------------


class DuplicateMatch(WireModel):
    """Cross-reference to a similar question elsewhere in the same run."""

    model_name: str
    question_number: int = Field(ge=1)
    match_type: str = ""
    similarity: float = Field(ge=0.0, le=1.0)
    matched_topic: str = ""
    common_keywords: list[str] = Field(default_factory=list)


class DuplicateScore(WireModel):
    """Raw duplicate signal from the backend for one question."""

    has_duplicate: bool = False
    topic_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    semantic_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    keyword_overlap: float = Field(default=0.0, ge=0.0, le=1.0)
    overall_score: float = Field(default=0.0, ge=0.0, le=1.0)
    matches: list[DuplicateMatch] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class QuestionResult(WireModel):
    """One question generated by one model. evaluation is None when judging failed."""

    question_number: int = Field(ge=1)
    question_type: str = ""
    question_topic: str = ""
    question_content: str = ""
    resume_reference: str | None = None
    answer_guide: AnswerGuide | None = None
    evaluation: EvaluationScore | None = None
    latency_ms: float = Field(default=0.0, ge=0.0)
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    duplicate_score: DuplicateScore | None = None


class Summary(WireModel):
    """Per-model aggregate. None averages mean nothing was available to average."""

    avg_total_score: float | None = None
    avg_resume_relevance: float | None = None
    avg_question_depth: float | None = None
    avg_practical_realism: float | None = None
    avg_guide_quality: float | None = None
    avg_diversity: float | None = None
    avg_latency_ms: float | None = None
    total_cost_usd: float = 0.0
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)

    def average(self, dimension: Dimension) -> float | None:
        return SUMMARY_ACCESSORS[dimension](self)


SUMMARY_ACCESSORS: dict[Dimension, Callable[[Summary], float | None]] = {
    Dimension.RESUME_RELEVANCE: lambda s: s.avg_resume_relevance,
    Dimension.QUESTION_DEPTH: lambda s: s.avg_question_depth,
    Dimension.PRACTICAL_REALISM: lambda s: s.avg_practical_realism,
    Dimension.GUIDE_QUALITY: lambda s: s.avg_guide_quality,
    Dimension.DIVERSITY: lambda s: s.avg_diversity,
}


class ModelResult(WireModel):
    """All questions for one participant, or the error that stopped it."""

    model: ModelConfig
    questions: list[QuestionResult] = Field(default_factory=list)
    summary: Summary | None = None
    error: str | None = None

    @field_validator("questions", mode="before")
    @classmethod
    def null_questions(cls, v: object) -> object:
        return [] if v is None else v

    @field_validator("summary", mode="before")
    @classmethod
    def drop_null_summary_fields(cls, v: object) -> object:
        # Failed participants arrive with a null-filled placeholder summary.
        if isinstance(v, dict):
            return {key: value for key, value in v.items() if value is not None}
        return v


class PurchaseInfo(WireModel):
    purchase_id: str
    member_id: str = ""
    member_name: str | None = None
    resume_id: str = ""


class BenchmarkResult(WireModel):
    """Full payload of GET /result/{jobId}."""

    purchase_info: PurchaseInfo
    results: list[ModelResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Job lifecycle
# ---------------------------------------------------------------------------


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class BenchmarkJob(WireModel):
    """Client-side view of one status poll."""

    job_id: str
    status: JobStatus
    progress_message: str = ""
    progress_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    completed_models: int = Field(default=0, ge=0)
    total_models: int = Field(default=0, ge=0)
    completed_questions: int = Field(default=0, ge=0)
    total_questions_per_model: int = Field(default=0, ge=0)
    error_message: str | None = None
    partial_results: list[ModelResult] = Field(default_factory=list)

    @field_validator("partial_results", mode="before")
    @classmethod
    def null_partial_results(cls, v: object) -> object:
        return [] if v is None else v


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class BenchmarkJobSummary(WireModel):
    """One past run as listed by GET /history."""

    job_id: str
    purchase_id: str = ""
    prompt_version: str = ""
    model_names: list[str] = Field(default_factory=list)
    total_questions: int = 0
    avg_total_score: float | None = None
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    created_at: datetime


class BenchmarkHistoryItem(WireModel):
    """One stored question row from a past run."""

    id: int
    job_id: str
    purchase_id: str = ""
    member_id: str = ""
    resume_id: str = ""
    model_provider: str
    model_name: str
    temperature: float = 0.0
    prompt_version: str = ""
    question_number: int = Field(ge=1)
    question_type: str = ""
    question_topic: str = ""
    question_content: str = ""
    resume_reference: str | None = None
    answer_guide_json: str | None = None
    html_content: str | None = None
    eval_total_score: float | None = None
    eval_resume_relevance: float | None = None
    eval_question_depth: float | None = None
    eval_practical_realism: float | None = None
    eval_guide_quality: float | None = None
    eval_diversity: float | None = None
    latency_ms: float = Field(default=0.0, ge=0.0)
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    estimated_cost_usd: float = 0.0
    created_at: datetime


class ModelComparisonStats(WireModel):
    """Per model-identity statistics over a trailing window."""

    model_provider: str
    model_name: str
    avg_total_score: float | None = None
    avg_latency_ms: float | None = None
    total_questions: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------


class PromptType(str, Enum):
    QUESTION_GENERATION = "QUESTION_GENERATION"
    EVALUATION = "EVALUATION"


class PromptTemplate(WireModel):
    """A stored prompt. At most one template per type is active at a time."""

    id: int
    prompt_type: PromptType
    version: int = Field(ge=1)
    name: str = ""
    content: str
    description: str = ""
    is_active: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreatePromptRequest(WireModel):
    """Payload for POST /prompts. The backend assigns the version."""

    prompt_type: PromptType = PromptType.QUESTION_GENERATION
    name: str | None = None
    content: str
    description: str | None = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "prompt content must not be empty"
            raise ValueError(msg)
        return v


class UpdatePromptRequest(WireModel):
    """Payload for PUT /prompts/{id}. Only fields that are set are sent."""

    name: str | None = None
    content: str | None = None
    description: str | None = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            msg = "prompt content must not be empty"
            raise ValueError(msg)
        return v


# ---------------------------------------------------------------------------
# Resume embeddings
# ---------------------------------------------------------------------------


class EmbeddingStatus(WireModel):
    """Whether a resume has been chunked and embedded for retrieval."""

    exists: bool = False
    chunk_count: int = Field(default=0, ge=0)


class RagChunk(WireModel):
    content: str
    score: float
    metadata: dict[str, str] | None = None


class RagSearchResult(WireModel):
    """Resume chunks retrieved for a query, best match first."""

    resume_id: str
    query: str
    chunks: list[RagChunk] = Field(default_factory=list)

    @field_validator("chunks", mode="before")
    @classmethod
    def null_chunks(cls, v: object) -> object:
        return [] if v is None else v


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------


class Page(WireModel, Generic[T]):
    """Spring-style page envelope."""

    content: list[T] = Field(default_factory=list)
    total_elements: int = 0
    total_pages: int = 0
    size: int = 0
    number: int = 0
    first: bool = True
    last: bool = True
