"""Domain errors for cijob."""

from .models import exit_status


class CIJobError(RuntimeError):
    """Raised when the job cannot continue."""


class ConfigurationError(CIJobError):
    """Bad arguments, missing secrets/identifiers or an unknown profile."""


class OperationFailure(CIJobError):
    """A delegated build, test, upload or clone call failed."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = exit_status(returncode) or 1


class ExternalSuiteFailure(OperationFailure):
    """The external acceptance suite failed and its diagnostics were reported."""
