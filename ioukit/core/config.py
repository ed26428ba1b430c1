"""Runtime settings read from ``IOU_*`` environment variables."""

import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Engine settings.

    Every field can be overridden through the environment, e.g.
    ``IOU_MAX_TAGS=8`` or ``IOU_STRICT_INVARIANTS=1``.  Construct
    directly in tests to avoid touching the environment.
    """

    # Raise on graph corruption instead of pruning the offending structure.
    strict_invariants: bool = False
    community_resolution: float = 1.0
    community_max_iterations: int = 1000
    # Max character distance between an entity and a law it refers to.
    reference_window: int = 150
    entity_term_boost: float = 2.0
    similar_top_k: int = 5
    min_similarity: float = 0.0
    max_tags: int = 5
    default_retention_years: int = 7
    default_locale: str = "nl"
    ner_rules_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            strict_invariants=_env_bool("IOU_STRICT_INVARIANTS", cls.strict_invariants),
            community_resolution=_env_float("IOU_COMMUNITY_RESOLUTION", cls.community_resolution),
            community_max_iterations=_env_int(
                "IOU_COMMUNITY_MAX_ITERATIONS", cls.community_max_iterations, minimum=1
            ),
            reference_window=_env_int("IOU_REFERENCE_WINDOW", cls.reference_window),
            entity_term_boost=_env_float("IOU_ENTITY_TERM_BOOST", cls.entity_term_boost),
            similar_top_k=_env_int("IOU_SIMILAR_TOP_K", cls.similar_top_k),
            min_similarity=_env_float("IOU_MIN_SIMILARITY", cls.min_similarity),
            max_tags=_env_int("IOU_MAX_TAGS", cls.max_tags),
            default_retention_years=_env_int(
                "IOU_DEFAULT_RETENTION_YEARS", cls.default_retention_years
            ),
            default_locale=os.getenv("IOU_DEFAULT_LOCALE", cls.default_locale),
            ner_rules_path=os.getenv("IOU_NER_RULES_PATH") or None,
        )
        if settings.community_resolution <= 0:
            raise ConfigurationError("IOU_COMMUNITY_RESOLUTION must be positive")
        logger.debug(
            "Loaded settings: %s",
            {f.name: getattr(settings, f.name) for f in fields(settings)},
        )
        return settings


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment once."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
