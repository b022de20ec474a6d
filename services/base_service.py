"""Base service class with shared functionality.

No Rich imports, no console output.
Returns structured data; raises typed exceptions.
"""

import logging

from claude_client import ClaudeClient
from config_loader import get_engine_settings, get_lexicon_dir, load_config
from rewriter.lexicon import Lexicon, load_lexicon

logger = logging.getLogger(__name__)


class BaseService:
    """Base class for all services with shared functionality.

    Services log instead of printing.
    """

    def __init__(
        self,
        config: dict | None = None,
        client: ClaudeClient | None = None,
        lexicon: Lexicon | None = None,
    ):
        """Initialize the service.

        Args:
            config: Configuration dictionary. If None, loads from config.json.
                Partial configs are merged over the defaults.
            client: ClaudeClient instance. If None, one is created on first use.
            lexicon: Lexicon override. If None, loads the configured lexicon.
        """
        self.config = get_engine_settings(config if config is not None else load_config())
        self._client = client
        self.lexicon = lexicon or self._load_lexicon()

        self.llm_settings = self.config["llm"]
        self.thresholds = self.config["thresholds"]
        self.features = self.config["features"]
        self.defaults = self.config["defaults"]

    @property
    def client(self) -> ClaudeClient:
        """Claude client, created lazily so offline operations need no API key."""
        if self._client is None:
            self._client = ClaudeClient(
                model=self.config["llm"]["model"],
                timeout=self.config["llm"]["timeout_seconds"],
            )
        return self._client

    def _load_lexicon(self) -> Lexicon:
        lexicon_dir = get_lexicon_dir(self.config)
        if lexicon_dir:
            logger.debug("Loading lexicon from %s", lexicon_dir)
            return load_lexicon(str(lexicon_dir))
        return load_lexicon()
