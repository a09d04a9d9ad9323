"""Exceptions raised across the benchmark workbench.

Transient poll failures never surface as exceptions; everything here is
terminal for the operation that raised it.
"""

GENERIC_JOB_FAILURE = "Benchmark job failed"


class WorkbenchError(Exception):
    """Base class for workbench errors."""


class SubmissionError(WorkbenchError):
    """A run could not be submitted; no job was created."""


class BenchmarkApiError(WorkbenchError):
    """The backend answered with success=false in its response envelope."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class JobFailedError(WorkbenchError):
    """The backend reported the job as FAILED."""

    def __init__(self, job_id: str, message: str | None = None) -> None:
        self.job_id = job_id
        self.message = message or GENERIC_JOB_FAILURE
        super().__init__(self.message)


class ResultRetrievalError(WorkbenchError):
    """The job COMPLETED but its result payload could not be fetched."""

    def __init__(self, job_id: str, message: str) -> None:
        self.job_id = job_id
        self.message = message
        super().__init__(f"Job {job_id} completed but its result could not be fetched: {message}")


class BackendUnreachableError(WorkbenchError):
    """Status polling failed too many times in a row."""

    def __init__(self, job_id: str, attempts: int) -> None:
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(
            f"Backend unreachable while polling job {job_id} "
            f"({attempts} consecutive failures)"
        )
