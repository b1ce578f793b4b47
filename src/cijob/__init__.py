"""
cijob - Build-and-test driver for continuous integration jobs
"""

__version__ = "0.3.0"

from .core import Orchestrator
from .errors import CIJobError, ConfigurationError, OperationFailure

__all__ = ["Orchestrator", "CIJobError", "ConfigurationError", "OperationFailure"]
