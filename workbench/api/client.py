"""HTTP client for the benchmark job service.

Every endpoint answers with an envelope::

    {"success": true, "data": {...}, "message": "...", "error": null}

The client unwraps ``data`` and validates it into the core schemas.
"""

import logging
from types import TracebackType
from typing import Any

import httpx

from workbench.api.base import BenchmarkBackend
from workbench.core.config import ApiConfig
from workbench.core.errors import BenchmarkApiError
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

logger = logging.getLogger(__name__)


class BenchmarkApiClient(BenchmarkBackend):
    """BenchmarkBackend over ``httpx.AsyncClient``.

    Usage::

        async with BenchmarkApiClient(settings.api) as client:
            job_id = await client.start_benchmark(request)

    An injected ``http_client`` is used as-is and never closed by this class.
    """

    def __init__(
        self,
        config: ApiConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or _build_client(config)
        self._benchmark = config.benchmark_path.rstrip("/")
        self._prompts = config.prompts_path.rstrip("/")
        self._embeddings = config.embeddings_path.rstrip("/")

    async def __aenter__(self) -> "BenchmarkApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- job lifecycle -----------------------------------------------------

    async def start_benchmark(self, request: BenchmarkRequest) -> str:
        data = await self._request(
            "POST",
            f"{self._benchmark}/start",
            json=request.model_dump(mode="json", by_alias=True),
        )
        job_id = data.get("jobId") if isinstance(data, dict) else None
        if not job_id:
            msg = "Start response did not include a jobId"
            raise BenchmarkApiError(msg)
        logger.info("Started benchmark job %s (%d models)", job_id, len(request.models))
        return str(job_id)

    async def get_status(self, job_id: str) -> BenchmarkJob:
        data = await self._request("GET", f"{self._benchmark}/status/{job_id}")
        return BenchmarkJob.model_validate(data)

    async def get_result(self, job_id: str) -> BenchmarkResult:
        data = await self._request("GET", f"{self._benchmark}/result/{job_id}")
        return BenchmarkResult.model_validate(data)

    # -- history -----------------------------------------------------------

    async def get_history(self, page: int = 0, size: int = 20) -> Page[BenchmarkJobSummary]:
        data = await self._request(
            "GET", f"{self._benchmark}/history", params={"page": page, "size": size},
        )
        return Page[BenchmarkJobSummary].model_validate(data)

    async def get_history_by_job(self, job_id: str) -> list[BenchmarkHistoryItem]:
        data = await self._request("GET", f"{self._benchmark}/history/{job_id}")
        return [BenchmarkHistoryItem.model_validate(item) for item in data or []]

    async def get_model_comparison(self, days: int = 30) -> list[ModelComparisonStats]:
        data = await self._request("GET", f"{self._benchmark}/compare", params={"days": days})
        return [ModelComparisonStats.model_validate(item) for item in data or []]

    async def get_history_by_model(
        self,
        provider: str,
        model_name: str,
        page: int = 0,
        size: int = 20,
    ) -> Page[BenchmarkHistoryItem]:
        data = await self._request(
            "GET",
            f"{self._benchmark}/history/model",
            params={"provider": provider, "modelName": model_name, "page": page, "size": size},
        )
        return Page[BenchmarkHistoryItem].model_validate(data)

    async def get_available_models(self) -> list[ModelInfo]:
        data = await self._request("GET", f"{self._benchmark}/models")
        return [ModelInfo.model_validate(item) for item in data or []]

    # -- prompt templates --------------------------------------------------

    async def get_prompts(self) -> list[PromptTemplate]:
        data = await self._request("GET", self._prompts)
        return [PromptTemplate.model_validate(item) for item in data or []]

    async def create_prompt(self, request: CreatePromptRequest) -> PromptTemplate:
        data = await self._request(
            "POST",
            self._prompts,
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        prompt = PromptTemplate.model_validate(data)
        logger.info(
            "Created %s prompt v%d (id %d)",
            prompt.prompt_type.value, prompt.version, prompt.id,
        )
        return prompt

    async def update_prompt(self, prompt_id: int, request: UpdatePromptRequest) -> PromptTemplate:
        data = await self._request(
            "PUT",
            f"{self._prompts}/{prompt_id}",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return PromptTemplate.model_validate(data)

    async def activate_prompt(self, prompt_id: int) -> None:
        await self._request("POST", f"{self._prompts}/{prompt_id}/activate", require_data=False)
        logger.info("Activated prompt %d", prompt_id)

    async def delete_prompt(self, prompt_id: int) -> None:
        await self._request("DELETE", f"{self._prompts}/{prompt_id}", require_data=False)
        logger.info("Deleted prompt %d", prompt_id)

    # -- resume embeddings -------------------------------------------------

    async def check_embedding(self, resume_id: str) -> EmbeddingStatus:
        data = await self._request("GET", f"{self._embeddings}/check/{resume_id}")
        return EmbeddingStatus.model_validate(data or {})

    async def search_embedding(self, resume_id: str, query: str) -> RagSearchResult:
        data = await self._request(
            "POST",
            f"{self._embeddings}/search",
            json={"resumeId": resume_id, "query": query, "topK": self._config.rag_top_k},
        )
        return RagSearchResult.model_validate(data)

    # -- transport ---------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        require_data: bool = True,
        **kwargs: Any,
    ) -> Any:
        """Send one request and return the unwrapped ``data`` field.

        Raises:
            httpx.HTTPError: On transport failures and non-2xx responses.
            BenchmarkApiError: If the envelope reports success=false.
        """
        logger.debug("%s %s", method, url)
        response = await self._client.request(method, url, **kwargs)
        response.raise_for_status()
        if not response.content and not require_data:
            return None
        return _unwrap(response.json(), require_data=require_data)


def _build_client(config: ApiConfig) -> httpx.AsyncClient:
    headers = {"Content-Type": "application/json"}
    token = config.token
    if token:
        headers["Authorization"] = f"Bearer {token}"
    else:
        logger.warning("%s is not set, requests will be unauthenticated", config.token_env)
    return httpx.AsyncClient(
        base_url=config.base_url,
        headers=headers,
        timeout=config.timeout_seconds,
    )


def _unwrap(body: Any, require_data: bool = True) -> Any:
    """Return ``data`` from an API envelope, raising on success=false."""
    if not isinstance(body, dict):
        msg = "Malformed API response: expected a JSON object"
        raise BenchmarkApiError(msg)
    if body.get("success") is False:
        error = body.get("error") or {}
        message = error.get("message") or body.get("message") or "Request failed"
        raise BenchmarkApiError(message, code=error.get("code"))
    if require_data and "data" not in body:
        msg = "Malformed API response: missing 'data' envelope"
        raise BenchmarkApiError(msg)
    return body.get("data")
