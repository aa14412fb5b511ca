"""
Configuration file loader for ``.callflat.yml``.

Every setting has a default, so the tool works without a config file.  Keys
may be written with dashes or underscores (``entry-points`` / ``entry_points``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List
import logging

import yaml


CONFIG_NAMES = (".callflat.yml", ".callflat.yaml")
OUTPUT_FORMATS = ("text", "smt2")


class ConfigError(ValueError):
    """The configuration file is malformed."""


@dataclass
class AnalysisConfig:
    warn_unresolved_asserts: bool = True
    entry_points: List[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    format: str = "text"
    pretty: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


def _get(raw: dict[str, Any], key: str, default: Any) -> Any:
    return raw.get(key, raw.get(key.replace("_", "-"), default))


@dataclass
class CallflatConfig:
    """Top-level configuration for callflat."""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, root: Path) -> "CallflatConfig":
        """Load ``.callflat.yml`` from ``root``, falling back to defaults."""
        for name in CONFIG_NAMES:
            config_path = root / name
            if config_path.exists():
                return cls.load_file(config_path)
        return cls()

    @classmethod
    def load_file(cls, config_path: Path) -> "CallflatConfig":
        try:
            with open(config_path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path}: expected a mapping at top level")
        return cls._from_dict(raw)

    @classmethod
    def _from_dict(cls, raw: dict[str, Any]) -> "CallflatConfig":
        analysis_raw = raw.get("analysis") or {}
        output_raw = raw.get("output") or {}
        logging_raw = raw.get("logging") or {}

        entry_points = _get(analysis_raw, "entry_points", [])
        if isinstance(entry_points, str):
            entry_points = [entry_points]
        analysis = AnalysisConfig(
            warn_unresolved_asserts=bool(_get(analysis_raw, "warn_unresolved_asserts", True)),
            entry_points=[str(name) for name in entry_points],
        )

        output = OutputConfig(
            format=str(_get(output_raw, "format", "text")),
            pretty=bool(_get(output_raw, "pretty", True)),
        )
        if output.format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {output.format!r}"
            )

        log = LoggingConfig(level=str(_get(logging_raw, "level", "WARNING")).upper())
        if not isinstance(logging.getLevelName(log.level), int):
            raise ConfigError(f"logging.level is not a logging level name: {log.level!r}")

        return cls(analysis=analysis, output=output, logging=log)

    def to_yaml(self) -> str:
        """Serialise to YAML string."""
        lines = [
            "# .callflat.yml: callflat configuration",
            "",
            "analysis:",
            f"  warn-unresolved-asserts: {str(self.analysis.warn_unresolved_asserts).lower()}",
        ]
        if self.analysis.entry_points:
            lines.append("  entry-points:")
            for name in self.analysis.entry_points:
                lines.append(f'    - "{name}"')
        else:
            lines.append("  entry-points: []")
        lines += [
            "",
            "output:",
            f"  format: {self.output.format}",
            f"  pretty: {str(self.output.pretty).lower()}",
            "",
            "logging:",
            f"  level: {self.logging.level}",
        ]
        return "\n".join(lines) + "\n"
