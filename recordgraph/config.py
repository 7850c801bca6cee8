"""
recordgraph Configuration

Environment configuration for the normalizer and its diagnostics.
"""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class NormalizerConfig:
    """Store-level normalization policy."""
    precise_type_refinement: bool = _env_flag("RECORDGRAPH_PRECISE_TYPE_REFINEMENT", "false")
    treat_missing_fields_as_null: bool = _env_flag("RECORDGRAPH_TREAT_MISSING_FIELDS_AS_NULL", "false")

    # off | log | collect
    diagnostics: str = os.getenv("RECORDGRAPH_DIAGNOSTICS", "log").strip().lower()


@dataclass
class Config:
    """Main configuration container."""
    normalizer: NormalizerConfig

    log_level: str = os.getenv("RECORDGRAPH_LOG_LEVEL", "INFO")

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(normalizer=NormalizerConfig())


# Global config instance
config = Config.from_env()
