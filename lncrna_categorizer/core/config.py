#!/usr/bin/env python3

"""
Configuration for the lncRNA categorization pipeline.

Values come from three layers: built-in defaults, ``LNCRNA_<FIELD>``
environment variables and a JSON or YAML file. ``load_config`` merges them
with the file taking precedence over the environment.
"""

import os
import json
from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any

import yaml

from .classifier import ClassifierSettings
from .exceptions import ConfigurationError

ENV_PREFIX = 'LNCRNA_'
YAML_SUFFIXES = ('.yaml', '.yml')


def _flag(value: str) -> bool:
    return value.strip().lower() in ('true', '1', 'yes')


def _optional(converter):
    """'' or 'none' leave an optional field unset."""
    def convert(value: str):
        if value.strip().lower() in ('', 'none'):
            return None
        return converter(value)
    return convert


# Environment strings are converted according to the declared field type
_ENV_CONVERTERS = {
    int: int,
    float: float,
    bool: _flag,
    str: str,
    Optional[int]: _optional(int),
    Optional[float]: _optional(float),
    Optional[str]: _optional(str),
}


def _is_yaml(path: str) -> bool:
    return path.lower().endswith(YAML_SUFFIXES)


def _read_mapping(config_path: str) -> Dict[str, Any]:
    """Parse a JSON or YAML configuration file into a dict."""
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) if _is_yaml(config_path) else json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse configuration file {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
    return data


@dataclass
class CategorizerConfig:
    """Thresholds, switches and processing options of one categorization run."""

    # Categorization thresholds
    min_length: int = 200
    max_length: Optional[int] = None
    min_exons: int = 1
    overlap_percent: Optional[float] = None
    linc_rna_proximity: Optional[int] = None

    # Categorization switches
    antisense_only: bool = False
    known_ncrnas: bool = False
    rescue: bool = False
    ignore_genepred_errors: bool = False

    # Putative lncRNA extraction
    fpkm_cutoff: float = 0.0
    cov_cutoff: float = 0.0
    full_read_support: bool = False
    include_novel: bool = False
    extract_pattern: Optional[str] = None

    # External tools
    gtf_to_genepred_bin: str = "gtfToGenePred"

    # Processing options
    parallel_workers: int = 1
    checkpoint_enabled: bool = True
    clean_tmp: bool = False
    memory_limit_mb: int = 4096
    debug_mode: bool = False

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'CategorizerConfig':
        """Build a config from a mapping; keys that are not config fields are ignored."""
        known = {f.name for f in fields(cls)}
        try:
            return cls(**{k: v for k, v in config_dict.items() if k in known})
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration parameters: {e}")

    @classmethod
    def from_file(cls, config_path: str) -> 'CategorizerConfig':
        return cls.from_dict(_read_mapping(config_path))

    @classmethod
    def env_overrides(cls) -> Dict[str, Any]:
        """Field values set through non-empty ``LNCRNA_<FIELD>`` variables."""
        overrides = {}
        for f in fields(cls):
            env_var = ENV_PREFIX + f.name.upper()
            value = os.getenv(env_var)
            if not value:
                continue
            try:
                overrides[f.name] = _ENV_CONVERTERS[f.type](value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")
        return overrides

    @classmethod
    def from_env(cls) -> 'CategorizerConfig':
        return cls.from_dict(cls.env_overrides())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save_to_file(self, config_path: str) -> None:
        """Write the config as YAML (.yaml/.yml) or JSON."""
        try:
            with open(config_path, 'w') as f:
                if _is_yaml(config_path):
                    yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Cannot write configuration file {config_path}: {e}")

    def validate(self) -> None:
        if self.min_length < 0:
            raise ConfigurationError("min_length must be >= 0")
        if self.max_length is not None and self.max_length < self.min_length:
            raise ConfigurationError("max_length must be >= min_length")
        if self.min_exons < 0:
            raise ConfigurationError("min_exons must be >= 0")
        if self.overlap_percent is not None and not 0 <= self.overlap_percent <= 100:
            raise ConfigurationError("overlap_percent must be between 0 and 100 (inclusive)")
        if self.linc_rna_proximity is not None and self.linc_rna_proximity < 0:
            raise ConfigurationError("linc_rna_proximity must be >= 0")
        if self.fpkm_cutoff < 0 or self.cov_cutoff < 0:
            raise ConfigurationError("fpkm_cutoff and cov_cutoff must be >= 0")
        if self.parallel_workers < 1:
            raise ConfigurationError("parallel_workers must be >= 1")
        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")
        if not self.gtf_to_genepred_bin:
            raise ConfigurationError("gtf_to_genepred_bin must not be empty")

    @property
    def extraction_pattern(self) -> str:
        """Class codes whose transcripts are extracted as putative lncRNAs."""
        if self.extract_pattern:
            return self.extract_pattern
        if self.include_novel:
            return 'j|i|o|u|x'
        return 'i|o|u|x'

    def to_settings(self) -> ClassifierSettings:
        """Settings consumed by the classification engine."""
        return ClassifierSettings(
            min_length=self.min_length,
            max_length=self.max_length,
            min_exons=self.min_exons,
            overlap_percent=self.overlap_percent,
            linc_rna_proximity=self.linc_rna_proximity,
            antisense_only=self.antisense_only,
            known_ncrnas=self.known_ncrnas,
            rescue=self.rescue,
        )


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> CategorizerConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Only the keys a layer actually sets override the layer below it, so a
    file that sets ``min_length`` keeps an environment ``min_exons``.

    Args:
        config_path: Path to a JSON or YAML configuration file (optional)
        use_env: Whether to read ``LNCRNA_*`` environment variables

    Returns:
        CategorizerConfig: Merged and validated configuration
    """
    values: Dict[str, Any] = {}
    if use_env:
        values.update(CategorizerConfig.env_overrides())
    if config_path:
        values.update(_read_mapping(config_path))
    return CategorizerConfig.from_dict(values)
