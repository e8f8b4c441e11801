# -*- coding: utf-8 -*-
"""
Risk Assessment Configuration

Centralized configuration for the risk-assessment engine covering:
- Generative-inference collaborator (enable flag, timeout, worker pool)
- Provenance tracking (enable flag, retained entries)
- Default assessment module
- Benchmark peer-comparison tolerance

Scoring thresholds and category weights are deliberately NOT configurable:
they are versioned constants in ``scorer.py`` and ``progression.py``.

All settings can be overridden via environment variables with the
``COMPLYSCORE_`` prefix (e.g. ``COMPLYSCORE_GENERATIVE_TIMEOUT_SECONDS``).

Example:
    >>> from complyscore.risk_assessment.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.generative_timeout_seconds, cfg.default_module)

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

from complyscore.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "COMPLYSCORE_"


# ---------------------------------------------------------------------------
# RiskAssessmentConfig
# ---------------------------------------------------------------------------


@dataclass
class RiskAssessmentConfig:
    """Complete configuration for the risk-assessment engine.

    Attributes:
        generative_timeout_seconds: Per-call timeout for the generative
            inference collaborator.
        enable_generative_inference: Whether the last cascade strategy runs.
        generative_max_workers: Worker threads used to bound generative calls.
        enable_provenance: Whether engine operations are chained into the
            provenance audit trail.
        max_provenance_entries: Maximum retained provenance entries.
        default_module: Module id given to newly created assessments.
        benchmark_peer_tolerance: Score distance from the industry average
            still reported as "average".
        assessment_due_days: Days after creation by which an open assessment
            is overdue on the dashboard.
        max_upcoming_actions: Action items listed among upcoming tasks.
    """

    # -- Generative inference ------------------------------------------------
    generative_timeout_seconds: float = 5.0
    enable_generative_inference: bool = True
    generative_max_workers: int = 2

    # -- Provenance ----------------------------------------------------------
    enable_provenance: bool = True
    max_provenance_entries: int = 10000

    # -- Assessments ---------------------------------------------------------
    default_module: str = "hipaa"

    # -- Benchmarking --------------------------------------------------------
    benchmark_peer_tolerance: int = 5

    # -- Dashboard -----------------------------------------------------------
    assessment_due_days: int = 30
    max_upcoming_actions: int = 5

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If a setting is out of range.
        """
        if self.generative_timeout_seconds <= 0:
            raise ConfigurationError(
                "generative_timeout_seconds must be positive",
                config_key="generative_timeout_seconds",
            )
        if self.generative_max_workers < 1:
            raise ConfigurationError(
                "generative_max_workers must be at least 1",
                config_key="generative_max_workers",
            )
        if self.max_provenance_entries < 1:
            raise ConfigurationError(
                "max_provenance_entries must be at least 1",
                config_key="max_provenance_entries",
            )
        if self.benchmark_peer_tolerance < 0:
            raise ConfigurationError(
                "benchmark_peer_tolerance must not be negative",
                config_key="benchmark_peer_tolerance",
            )
        if self.assessment_due_days < 1:
            raise ConfigurationError(
                "assessment_due_days must be at least 1",
                config_key="assessment_due_days",
            )
        if self.max_upcoming_actions < 0:
            raise ConfigurationError(
                "max_upcoming_actions must not be negative",
                config_key="max_upcoming_actions",
            )

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> RiskAssessmentConfig:
        """Build a RiskAssessmentConfig from environment variables.

        Every field can be overridden via ``COMPLYSCORE_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Unparseable numbers fall back to the default with a warning.

        Returns:
            Populated RiskAssessmentConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %.1f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            generative_timeout_seconds=_float(
                "GENERATIVE_TIMEOUT_SECONDS", cls.generative_timeout_seconds,
            ),
            enable_generative_inference=_bool(
                "ENABLE_GENERATIVE_INFERENCE", cls.enable_generative_inference,
            ),
            generative_max_workers=_int(
                "GENERATIVE_MAX_WORKERS", cls.generative_max_workers,
            ),
            enable_provenance=_bool("ENABLE_PROVENANCE", cls.enable_provenance),
            max_provenance_entries=_int(
                "MAX_PROVENANCE_ENTRIES", cls.max_provenance_entries,
            ),
            default_module=_str("DEFAULT_MODULE", cls.default_module),
            benchmark_peer_tolerance=_int(
                "BENCHMARK_PEER_TOLERANCE", cls.benchmark_peer_tolerance,
            ),
            assessment_due_days=_int("ASSESSMENT_DUE_DAYS", cls.assessment_due_days),
            max_upcoming_actions=_int("MAX_UPCOMING_ACTIONS", cls.max_upcoming_actions),
        )
        config.validate()

        logger.info(
            "RiskAssessmentConfig loaded: generative=%s/%.1fs, provenance=%s, "
            "module=%s",
            config.enable_generative_inference,
            config.generative_timeout_seconds,
            config.enable_provenance,
            config.default_module,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[RiskAssessmentConfig] = None
_config_lock = threading.Lock()


def get_config() -> RiskAssessmentConfig:
    """Return the singleton RiskAssessmentConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = RiskAssessmentConfig.from_env()
    return _config_instance


def set_config(config: RiskAssessmentConfig) -> None:
    """Replace the singleton RiskAssessmentConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    config.validate()
    with _config_lock:
        _config_instance = config
    logger.info("RiskAssessmentConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "RiskAssessmentConfig",
    "get_config",
    "set_config",
    "reset_config",
]
