"""Pipeline error hierarchy."""

from __future__ import annotations


class PipelineError(Exception):
    """Raised when the pipeline encounters a fatal error."""


class FetchError(PipelineError):
    """The source URL could not be fetched."""


class ScriptGenerationError(PipelineError):
    """The LLM call failed or returned something unusable."""


class ScriptFormatError(ScriptGenerationError):
    """The generated MulmoScript is missing required fields."""


class CommandError(PipelineError):
    """A mulmo invocation exited non-zero or could not be started."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
