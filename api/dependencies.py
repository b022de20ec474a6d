"""FastAPI dependency injection providers.

Singleton instances shared across all requests.
"""

from functools import lru_cache

from config_loader import load_config
from services import RewriteService


@lru_cache()
def get_config() -> dict:
    """Cached config singleton."""
    return load_config()


# Module-level singleton
_rewrite_service: RewriteService | None = None


def get_rewrite_service() -> RewriteService:
    """RewriteService singleton; its Claude client is created on first generation."""
    global _rewrite_service
    if _rewrite_service is None:
        _rewrite_service = RewriteService(config=get_config())
    return _rewrite_service


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _rewrite_service
    _rewrite_service = None
    get_config.cache_clear()
