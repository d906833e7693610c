"""Exceptions raised by the file-processing pipeline."""

from ..config import RequirementsGeneratorError


class ExtractionError(RequirementsGeneratorError):
    """The archive cannot be read as a ZIP container."""


class CredentialError(RequirementsGeneratorError):
    """The model client was never configured with an API key."""


class PreconditionError(RequirementsGeneratorError):
    """An operation was called with input it cannot meaningfully handle."""


class RetryError(RequirementsGeneratorError):
    """An operation kept failing after every retry was spent.

    The last underlying failure is chained as ``__cause__``.
    """

    def __init__(self, label: str, attempts: int, last_error: BaseException):
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class AnalysisError(RequirementsGeneratorError):
    """Analysis of a single file failed for good."""

    def __init__(self, path: str, message: str = ""):
        super().__init__(message or f"Failed to analyze file: {path}")
        self.path = path


class SynthesisError(RequirementsGeneratorError):
    """The final document could not be generated."""


class InvalidTransitionError(RequirementsGeneratorError):
    """A project status change outside the allowed state graph."""


class ProjectNotFoundError(RequirementsGeneratorError):
    """No project with the given id exists in the store."""

    def __init__(self, project_id: str):
        super().__init__(f"Project '{project_id}' not found.")
        self.project_id = project_id
