"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


def default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".mealgen"


def _default_snapshot_path() -> Path:
    """Return the default generator config snapshot path."""
    return default_config_dir() / "generator.yaml"


@dataclass
class SourcesConfig:
    """Where generator configuration, candidates and guardrail terms come from."""

    config_path: Path = field(default_factory=_default_snapshot_path)


@dataclass
class GenerationConfigSettings:
    """Generation switches, turned into GenerationOptions by the CLI."""

    locale: str = "nl"
    enforce_guardrails: bool = True
    sanity_check: bool = True
    default_seed: int = 0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class DefaultsConfig:
    """Default values for various operations."""

    output_format: str = "table"  # "table", "json", "markdown"


@dataclass
class Settings:
    """Main application settings."""

    sources: SourcesConfig = field(default_factory=SourcesConfig)
    generation: GenerationConfigSettings = field(default_factory=GenerationConfigSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.mealgen/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse sources config
        if "sources" in data:
            src_data = data["sources"] or {}
            if src_data.get("config_path"):
                settings.sources.config_path = Path(src_data["config_path"]).expanduser()

        # Parse generation config
        if "generation" in data:
            gen_data = data["generation"] or {}
            if "locale" in gen_data:
                settings.generation.locale = str(gen_data["locale"])
            if "enforce_guardrails" in gen_data:
                settings.generation.enforce_guardrails = bool(gen_data["enforce_guardrails"])
            if "sanity_check" in gen_data:
                settings.generation.sanity_check = bool(gen_data["sanity_check"])
            if "default_seed" in gen_data:
                settings.generation.default_seed = int(gen_data["default_seed"])

        # Parse logging config
        if "logging" in data:
            log_data = data["logging"] or {}
            if "level" in log_data:
                settings.logging.level = str(log_data["level"]).upper()

        # Parse defaults
        if "defaults" in data:
            def_data = data["defaults"] or {}
            if "output_format" in def_data:
                settings.defaults.output_format = def_data["output_format"]

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.mealgen/config.yaml
        """
        if config_path is None:
            config_path = default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        return {
            "sources": {
                "config_path": str(self.sources.config_path),
            },
            "generation": {
                "locale": self.generation.locale,
                "enforce_guardrails": self.generation.enforce_guardrails,
                "sanity_check": self.generation.sanity_check,
                "default_seed": self.generation.default_seed,
            },
            "logging": {
                "level": self.logging.level,
            },
            "defaults": {
                "output_format": self.defaults.output_format,
            },
        }


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings
