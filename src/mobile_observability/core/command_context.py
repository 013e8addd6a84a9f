"""
Command context for shared initialization across CLI commands.

Provides a unified way to initialize config, the plugin corpus and the router
to reduce boilerplate code in command implementations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .config import ConfigManager
from .corpus import Corpus
from .index import is_stale, load_index
from ..processors.router import ReferenceRouter, RouteRequest
from ..processors.semantic_ranker import SemanticRanker


logger = logging.getLogger(__name__)


class CommandContext:
    """Encapsulates shared initialization logic for CLI commands.

    Handles config loading, validation, corpus discovery and router creation
    in a single reusable class.

    Example:
        ```python
        with CommandContext(config_path) as ctx:
            result = ctx.router().route(ctx.make_request("instrument", platform="swift"))
        ```
    """

    def __init__(self, config_path: Optional[str] = None, plugin_root: Optional[str] = None):
        """Initialize command context with config and corpus.

        Args:
            config_path: Path to main config file (None = use default)
            plugin_root: Optional corpus directory overriding ``plugin.root``

        Raises:
            ValueError: If configuration is invalid
        """
        self.config_manager = ConfigManager(config_path)

        if not self.config_manager.validate_config():
            raise ValueError("Invalid configuration. Run 'mobile-observability status' for details.")

        self.config = self.config_manager.load_config()
        self.settings = self.config_manager.get_router_settings()
        self.plugin_root = Path(plugin_root).resolve() if plugin_root else self.config_manager.get_plugin_root()
        self.corpus = Corpus.load(self.plugin_root, int(self.settings.get("chars_per_token", 4)))
        self._router = None

        logger.debug(
            f"CommandContext initialized with config from {self.config_manager.config_path} "
            f"and {len(self.corpus)} documents from {self.plugin_root}"
        )

    def router(self):
        """Return the reference router, attaching the semantic ranker when enabled."""
        if self._router is None:
            ranker = None
            if float(self.settings.get("semantic_weight", 0.0)) > 0:
                ranker = SemanticRanker(model_name=str(self.settings.get("semantic_model")))
            self._router = ReferenceRouter(
                self.corpus, self.settings, self.config_manager.get_intents(), ranker=ranker
            )
        return self._router

    def resolve_platform(self, name: Optional[str]) -> Optional[str]:
        """Canonicalise a platform alias.

        Raises:
            ValueError: If the alias is unknown
        """
        if not name:
            return None
        canonical = self.config_manager.canonical_platform(name)
        if canonical is None:
            raise ValueError(
                f"Unknown platform '{name}'. Supported platforms: {', '.join(self.config_manager.get_platforms())}"
            )
        return canonical

    def resolve_vendor(self, name: Optional[str]) -> Optional[str]:
        """Canonicalise a vendor alias.

        Raises:
            ValueError: If the alias is unknown
        """
        if not name:
            return None
        canonical = self.config_manager.canonical_vendor(name)
        if canonical is None:
            raise ValueError(
                f"Unknown vendor '{name}'. Supported vendors: {', '.join(self.config_manager.get_vendors())}"
            )
        return canonical

    def make_request(
        self,
        intent: str,
        *,
        platform: Optional[str] = None,
        vendor: Optional[str] = None,
        query: str = "",
        token_budget: Optional[int] = None,
        include: Optional[List[str]] = None,
        vendors: Optional[List[str]] = None,
    ):
        """Build a RouteRequest with canonical platform/vendor names."""
        self.config_manager.get_intent(intent)
        return RouteRequest(
            intent=intent,
            platform=self.resolve_platform(platform),
            vendor=self.resolve_vendor(vendor),
            query=query or "",
            token_budget=token_budget,
            include=tuple(include or ()),
            vendors=tuple(vendors or ()),
        )

    def warn_if_index_stale(self) -> None:
        """Log a warning when INDEX.yaml no longer matches the corpus."""
        index_path = self.config_manager.get_index_path()
        try:
            index = load_index(index_path)
        except FileNotFoundError:
            logger.debug("No index at %s", index_path)
            return
        except ValueError as e:
            logger.warning("Ignoring unreadable index %s: %s", index_path, e)
            return
        if is_stale(index, self.corpus):
            logger.warning("Index %s is stale; run 'mobile-observability index' to refresh it", index_path)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        pass
