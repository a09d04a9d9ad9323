"""Job lifecycle controller: polls one backend job until it reaches a terminal state.

State machine::

    PENDING → RUNNING → COMPLETED | FAILED

Each controller owns at most one polling task. A status request is issued
immediately, then again ``interval_seconds`` after each response, so only one
request is ever in flight. Failed status requests are retried on the next
tick; ``max_consecutive_failures`` in a row ends the loop with
BackendUnreachableError.
"""

import asyncio
import logging
from collections.abc import Callable

from workbench.api.base import BenchmarkBackend
from workbench.core.config import PollingConfig
from workbench.core.errors import (
    BackendUnreachableError,
    JobFailedError,
    ResultRetrievalError,
    WorkbenchError,
)
from workbench.core.schemas import BenchmarkJob, BenchmarkResult, JobStatus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BenchmarkJob], None]
ResultCallback = Callable[[BenchmarkResult], None]
ErrorCallback = Callable[[WorkbenchError], None]


class PollHandle:
    """Handle for one started polling loop.

    Cancelling a handle whose loop was already replaced by a newer
    ``start`` is a no-op.
    """

    def __init__(
        self,
        controller: "JobLifecycleController",
        job_id: str,
        generation: int,
        task: asyncio.Task[None],
    ) -> None:
        self._controller = controller
        self._generation = generation
        self._task = task
        self.job_id = job_id

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        self._controller._cancel_generation(self._generation)

    async def wait(self) -> None:
        """Wait for the loop to end; re-raises errors thrown by callbacks."""
        await asyncio.wait({self._task})
        if not self._task.cancelled() and self._task.exception() is not None:
            raise self._task.exception()  # type: ignore[misc]


class JobLifecycleController:
    """Drives a single submitted job to COMPLETED or FAILED.

    Usage::

        controller = JobLifecycleController(backend, settings.polling)
        handle = controller.start(job_id, on_progress, on_complete, on_error)
        ...
        handle.cancel()  # silent: no further callbacks
    """

    def __init__(self, backend: BenchmarkBackend, config: PollingConfig) -> None:
        self._backend = backend
        self._config = config
        self._generation = 0
        self._active: int | None = None
        self._task: asyncio.Task[None] | None = None
        self._handle: PollHandle | None = None
        self._job: BenchmarkJob | None = None

    @property
    def job(self) -> BenchmarkJob | None:
        """Latest status snapshot of the current (or last) job."""
        return self._job

    @property
    def active(self) -> bool:
        return self._active is not None

    def start(
        self,
        job_id: str,
        on_progress: ProgressCallback,
        on_complete: ResultCallback,
        on_error: ErrorCallback,
    ) -> PollHandle:
        """Start polling ``job_id``, stopping any loop that is still running.

        Must be called from a running event loop.
        """
        self.cancel()
        self._generation += 1
        generation = self._generation
        self._active = generation
        self._job = None

        task = asyncio.get_running_loop().create_task(
            self._poll(job_id, generation, on_progress, on_complete, on_error),
            name=f"poll-{job_id}",
        )
        self._task = task
        self._handle = PollHandle(self, job_id, generation, task)
        logger.info("Polling job %s every %.1fs", job_id, self._config.interval_seconds)
        return self._handle

    def cancel(self) -> None:
        """Stop polling now. Idempotent; the backend job keeps running."""
        if self._active is not None:
            logger.info("Stopped polling (generation %d)", self._active)
        self._active = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the most recently started loop to end."""
        if self._handle is not None:
            await self._handle.wait()

    def _cancel_generation(self, generation: int) -> None:
        if generation == self._generation:
            self.cancel()

    def _is_current(self, generation: int) -> bool:
        return self._active == generation

    def _settle(self, generation: int) -> bool:
        """Mark the loop terminal. False if it was cancelled or replaced."""
        if not self._is_current(generation):
            return False
        self._active = None
        return True

    async def _poll(
        self,
        job_id: str,
        generation: int,
        on_progress: ProgressCallback,
        on_complete: ResultCallback,
        on_error: ErrorCallback,
    ) -> None:
        failures = 0
        ceiling = self._config.max_consecutive_failures

        try:
            while self._is_current(generation):
                try:
                    job = await self._backend.get_status(job_id)
                except Exception:
                    failures += 1
                    logger.warning(
                        "Status poll failed for job %s (%d in a row)",
                        job_id, failures,
                        exc_info=True,
                    )
                    if ceiling is not None and failures >= ceiling:
                        if self._settle(generation):
                            logger.error("Giving up on job %s after %d failed polls", job_id, failures)
                            on_error(BackendUnreachableError(job_id, failures))
                        return
                    await asyncio.sleep(self._config.interval_seconds)
                    continue

                failures = 0
                if not self._is_current(generation):
                    return
                self._job = job
                on_progress(job)

                if job.status is JobStatus.COMPLETED:
                    await self._deliver_result(job_id, generation, on_complete, on_error)
                    return
                if job.status is JobStatus.FAILED:
                    if self._settle(generation):
                        logger.error("Job %s failed: %s", job_id, job.error_message)
                        on_error(JobFailedError(job_id, job.error_message))
                    return

                await asyncio.sleep(self._config.interval_seconds)
        finally:
            # However the loop ended (a raising callback included), release the slot.
            self._settle(generation)

    async def _deliver_result(
        self,
        job_id: str,
        generation: int,
        on_complete: ResultCallback,
        on_error: ErrorCallback,
    ) -> None:
        try:
            result = await self._backend.get_result(job_id)
        except Exception as e:
            if self._settle(generation):
                logger.error("Job %s completed but result fetch failed: %s", job_id, e)
                on_error(ResultRetrievalError(job_id, str(e)))
            return

        if self._settle(generation):
            logger.info("Job %s completed with %d model results", job_id, len(result.results))
            on_complete(result)
