"""Anchor services - framework-agnostic business logic layer.

Services wrap the rewrite engine and return structured data (Pydantic models).
No Rich imports, no console output. Callers handle presentation.
"""

from rewriter.exceptions import (
    RewriteEngineError,
    InvalidInputError,
    EvidenceBuildError,
    GenerationError,
    GenerationTimeoutError,
    GenerationUnavailableError,
    InternalEngineError,
)

from .base_service import BaseService
from .rewrite_service import RewriteService

__all__ = [
    # Base
    "BaseService",
    # Services
    "RewriteService",
    # Exceptions
    "RewriteEngineError",
    "InvalidInputError",
    "EvidenceBuildError",
    "GenerationError",
    "GenerationTimeoutError",
    "GenerationUnavailableError",
    "InternalEngineError",
]
