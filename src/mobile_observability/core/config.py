"""Configuration management for the YAML-based toolkit config."""

import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .paths import get_bundled_plugin_dir, get_data_dir, get_system_path, resolve_data_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = get_data_dir() / "config"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"
_TEMPLATE_CONFIG = get_system_path("config", "config.yaml")

_DEFAULT_CONFIG_TEMPLATE = """# Auto-generated default configuration for mobile-observability
plugin:
  root: "bundled"

index:
  path: "INDEX.yaml"

router:
  token_budget: 8000
  chars_per_token: 4
  min_section_tokens: 200
  platform_boost: 0.3
  vendor_boost: 0.3
  priority_weight: 0.1
  semantic_weight: 0.0

intents:
  instrument:
    keywords: ["instrumentation", "setup", "sdk", "tracing", "crash", "performance"]
    kinds: ["reference", "skill"]
  diagnose:
    keywords: ["crash", "anr", "hang", "stack", "symbolication", "memory", "startup"]
    kinds: ["reference", "skill", "agent"]
  audit:
    keywords: ["audit", "coverage", "gaps", "checklist", "sampling", "privacy"]
    kinds: ["reference", "skill", "agent"]

platforms:
  ios: ["ios", "swift", "objc"]
  android: ["android", "kotlin", "java"]
  react-native: ["react-native", "rn"]
  flutter: ["flutter", "dart"]

vendors:
  sentry: ["sentry"]
  datadog: ["datadog"]
  embrace: ["embrace"]
  bugsnag: ["bugsnag"]
  opentelemetry: ["opentelemetry", "otel"]
  measure: ["measure"]

links:
  rps: 2.0
  max_retries: 3
  timeout: 10
"""

DOCUMENT_KINDS = {"command", "agent", "skill", "reference"}

_ROUTER_DEFAULTS: Dict[str, Any] = {
    "token_budget": 8000,
    "chars_per_token": 4,
    "min_section_tokens": 200,
    "platform_boost": 0.3,
    "vendor_boost": 0.3,
    "priority_weight": 0.1,
    "semantic_weight": 0.0,
    "semantic_model": "BAAI/bge-small-en-v1.5",
}

_NUMERIC_ROUTER_KEYS = [
    "platform_boost",
    "vendor_boost",
    "priority_weight",
    "semantic_weight",
]

_INTEGER_ROUTER_KEYS = ["token_budget", "chars_per_token", "min_section_tokens"]


def _write_template(path: Path, content: str) -> None:
    """Write templated YAML content to disk with a trailing newline."""
    path.write_text(content.strip() + "\n", encoding="utf-8")


def _alias_key(name: str) -> str:
    return re.sub(r"[\s_]+", "-", (name or "").strip().lower())


class ConfigManager:
    """Manages loading and validation of the YAML configuration file."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize the manager and ensure a baseline config file exists."""
        path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
        if not path.is_absolute():
            path = path.resolve()
        self.config_path = str(path)
        self.base_dir = str(path.parent)
        self._config = None
        self._ensure_default_config()

    def load_config(self) -> Dict[str, Any]:
        """Load the main configuration file."""
        if self._config is None:
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {self.config_path}")
            except Exception as e:
                logger.error(f"Failed to load config from {self.config_path}: {e}")
                raise

        return self._config

    def _ensure_default_config(self) -> None:
        """Create the default configuration file if it is missing."""
        config_file = Path(self.config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        if config_file.exists():
            return

        if _TEMPLATE_CONFIG.exists():
            try:
                shutil.copyfile(_TEMPLATE_CONFIG, config_file)
                logger.info("Created default config.yaml at %s", config_file)
                return
            except Exception as exc:
                logger.warning("Failed to copy template config: %s", exc)

        _write_template(config_file, _DEFAULT_CONFIG_TEMPLATE)
        logger.info("Created fallback default config.yaml at %s", config_file)

    def get_plugin_root(self) -> Path:
        """Return the plugin corpus directory the config points at."""
        config = self.load_config()
        root = ((config.get('plugin') or {}).get('root') or '').strip()
        if not root or root == 'bundled':
            return get_bundled_plugin_dir()
        candidate = Path(root).expanduser()
        if not candidate.is_absolute():
            candidate = Path(self.base_dir) / candidate
        return candidate.resolve()

    def get_index_path(self) -> Path:
        """Return the INDEX.yaml location (relative paths live under the data dir)."""
        config = self.load_config()
        raw = ((config.get('index') or {}).get('path') or 'INDEX.yaml').strip()
        return resolve_data_file(raw)

    def get_router_settings(self) -> Dict[str, Any]:
        """Return router settings merged over the built-in defaults."""
        config = self.load_config()
        settings = dict(_ROUTER_DEFAULTS)
        settings.update(config.get('router') or {})
        return settings

    def get_intents(self) -> Dict[str, Dict[str, Any]]:
        """Return every configured intent with list fields normalized."""
        config = self.load_config()
        intents = {}
        for name, raw in (config.get('intents') or {}).items():
            raw = raw or {}
            intents[str(name)] = {
                'keywords': [str(k) for k in (raw.get('keywords') or [])],
                'kinds': [str(k) for k in (raw.get('kinds') or ['reference', 'skill'])],
                'required': [str(p) for p in (raw.get('required') or [])],
            }
        return intents

    def get_available_intents(self) -> List[str]:
        """Get the list of configured intent names."""
        return list(self.get_intents().keys())

    def get_intent(self, name: str) -> Dict[str, Any]:
        """Return one intent definition, raising ValueError when it is unknown."""
        intents = self.get_intents()
        if name not in intents:
            raise ValueError(
                f"Unknown intent '{name}'. Available intents: {', '.join(sorted(intents)) or 'none'}"
            )
        return intents[name]

    def _canonical(self, section: str, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        config = self.load_config()
        wanted = _alias_key(name)
        for canonical, aliases in (config.get(section) or {}).items():
            candidates = {_alias_key(canonical)}
            candidates.update(_alias_key(a) for a in (aliases or []))
            if wanted in candidates:
                return str(canonical)
        return None

    def canonical_platform(self, name: Optional[str]) -> Optional[str]:
        """Map a platform alias (``swift``, ``rn``...) to its canonical name."""
        return self._canonical('platforms', name)

    def canonical_vendor(self, name: Optional[str]) -> Optional[str]:
        """Map a vendor alias (``otel``, ``dd``...) to its canonical name."""
        return self._canonical('vendors', name)

    def get_platforms(self) -> List[str]:
        return [str(p) for p in (self.load_config().get('platforms') or {})]

    def get_vendors(self) -> List[str]:
        return [str(v) for v in (self.load_config().get('vendors') or {})]

    def get_extra_rule_files(self) -> List[Path]:
        """Return user-configured anti-pattern rule files, resolved beside the config."""
        config = self.load_config()
        files = []
        for raw in ((config.get('hooks') or {}).get('rules') or []):
            candidate = Path(str(raw)).expanduser()
            if not candidate.is_absolute():
                candidate = Path(self.base_dir) / candidate
            files.append(candidate)
        return files

    def get_link_settings(self) -> Dict[str, Any]:
        config = self.load_config()
        links = dict(config.get('links') or {})
        links.setdefault('rps', 2.0)
        links.setdefault('max_retries', 3)
        links.setdefault('timeout', 10)
        links['ignore'] = [str(p) for p in (links.get('ignore') or [])]
        return links

    def validate_config(self) -> bool:
        """Validate the configuration file."""
        try:
            config = self.load_config()
            if not isinstance(config, dict):
                logger.error("Configuration root must be a mapping")
                return False

            required_sections = ['intents', 'platforms', 'vendors']
            for section in required_sections:
                if section not in config:
                    logger.error(f"Missing required section '{section}' in main config")
                    return False

            plugin_root = self.get_plugin_root()
            if not plugin_root.is_dir():
                logger.error(f"Plugin root '{plugin_root}' is not a directory")
                return False

            router = config.get('router') or {}
            if not isinstance(router, dict):
                logger.error("'router' must be a mapping")
                return False
            for key in _INTEGER_ROUTER_KEYS:
                if key in router:
                    value = router[key]
                    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                        logger.error(f"router.{key} must be a positive integer")
                        return False
            for key in _NUMERIC_ROUTER_KEYS:
                if key in router:
                    value = router[key]
                    if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                        logger.error(f"router.{key} must be a non-negative number (int/float)")
                        return False

            for section in ('platforms', 'vendors'):
                mapping = config.get(section)
                if not isinstance(mapping, dict) or not mapping:
                    logger.error(f"'{section}' must be a non-empty mapping of name -> aliases")
                    return False
                for name, aliases in mapping.items():
                    if aliases is not None and (
                        not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases)
                    ):
                        logger.error(f"{section}.{name} aliases must be a list of strings")
                        return False

            intents = config.get('intents')
            if not isinstance(intents, dict) or not intents:
                logger.error("'intents' must be a non-empty mapping")
                return False
            for name, intent in intents.items():
                intent = intent or {}
                if not isinstance(intent, dict):
                    logger.error(f"Intent '{name}' must be a mapping")
                    return False
                keywords = intent.get('keywords')
                if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
                    logger.error(f"Intent '{name}' keywords must be a list of strings")
                    return False
                kinds = intent.get('kinds') or []
                unknown = [k for k in kinds if k not in DOCUMENT_KINDS]
                if unknown:
                    logger.error(f"Intent '{name}' references unknown document kinds: {unknown}")
                    return False
                required = intent.get('required') or []
                for rel in required:
                    if not (plugin_root / rel).is_file():
                        logger.warning(f"Intent '{name}' requires missing file '{rel}'")

            for rule_file in self.get_extra_rule_files():
                if not rule_file.is_file():
                    logger.error(f"Anti-pattern rule file not found: {rule_file}")
                    return False

            logger.info("Configuration validation passed")
            return True

        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            return False


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_CONFIG_DIR",
    "DOCUMENT_KINDS",
]
