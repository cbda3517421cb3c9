from __future__ import annotations


class PipelineError(Exception):
    """Structural failure that aborts a run."""

    stage = "pipeline"


class ResolutionFailure(PipelineError, ValueError):
    stage = "resolve"


class SchemaError(PipelineError, ValueError):
    stage = "normalize"

    def __init__(self, message: str, headers: tuple[str, ...] | list[str] = ()) -> None:
        super().__init__(message)
        self.headers = tuple(headers)


class DeliveryFailure(PipelineError, RuntimeError):
    stage = "deliver"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
