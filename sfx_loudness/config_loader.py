"""
Configuration loader for loudness targets.

Loads the caller-level loudness numbers (target, tolerance window, peak
ceiling) from YAML and validates them with pydantic. The engine itself
never reads configuration; callers pass these values in.
"""

import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .loudness_meter import LoudnessStats
from .utils import LOUDNESS_TOLERANCE, PEAK_HEADROOM_DB, TARGET_LUFS

logger = logging.getLogger(__name__)

LOUDNESS_CONFIG_FILE = "loudness.yaml"


class ConfigLoadError(Exception):
    """Raised when configuration loading fails."""
    pass


class LoudnessTargets(BaseModel):
    """Validated loudness targets for a content pipeline."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    target_lufs: float = Field(default=TARGET_LUFS, le=0.0, description="Integrated loudness target")
    tolerance_db: float = Field(default=LOUDNESS_TOLERANCE, gt=0.0, description="± dB window around target")
    peak_ceiling_db: float = Field(default=PEAK_HEADROOM_DB, le=0.0, description="Sample peak ceiling in dBFS")

    def is_within_tolerance(self, stats: LoudnessStats) -> bool:
        """
        Check a measurement against the window and the ceiling.

        Non-finite loudness or peak (silence) is not flagged.
        """
        lufs_ok = (
            not math.isfinite(stats.lufs)
            or abs(stats.lufs - self.target_lufs) <= self.tolerance_db
        )
        peak_ok = (
            not math.isfinite(stats.peak_db)
            or stats.peak_db <= self.peak_ceiling_db
        )
        return lufs_ok and peak_ok


class ConfigLoader:
    """
    Loads loudness targets from a YAML file with caching.

    Attributes:
        config_dir: Directory holding loudness.yaml
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory for config files.
                       Defaults to ../configs relative to this module.
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent.parent / "configs"
        else:
            self.config_dir = Path(config_dir)

        self._cache: Dict[str, Any] = {}

    @property
    def config_path(self) -> Path:
        return self.config_dir / LOUDNESS_CONFIG_FILE

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """
        Load a YAML file and return its contents.

        Raises:
            ConfigLoadError: If the file cannot be loaded or parsed
        """
        if not path.exists():
            raise ConfigLoadError(f"Configuration file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}")
        except OSError as e:
            raise ConfigLoadError(f"Failed to load configuration file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top of {path}")
        return data

    def has_loudness_config(self) -> bool:
        return self.config_path.exists()

    def load_targets(self) -> LoudnessTargets:
        """
        Load and validate the 'loudness' section.

        Returns:
            LoudnessTargets (defaults for keys the file omits)

        Raises:
            ConfigLoadError: If the file is missing, unparsable or invalid
        """
        cache_key = "loudness_targets"
        if cache_key in self._cache:
            return self._cache[cache_key]

        data = self._load_yaml(self.config_path)
        section = data.get("loudness", {})
        if not isinstance(section, dict):
            raise ConfigLoadError(f"'loudness' section in {self.config_path} must be a mapping")

        try:
            targets = LoudnessTargets(**section)
        except ValidationError as e:
            raise ConfigLoadError(f"Invalid loudness targets in {self.config_path}: {e}")

        self._cache[cache_key] = targets
        logger.debug(f"Loaded loudness targets from {self.config_path}")
        return targets

    def load_targets_or_default(self) -> LoudnessTargets:
        """Load targets, falling back to defaults when no file exists."""
        if not self.has_loudness_config():
            logger.warning(f"No loudness config at {self.config_path}, using defaults")
            return LoudnessTargets()
        return self.load_targets()

    def clear_cache(self):
        """Clear all cached configurations."""
        self._cache.clear()
        logger.info("Configuration cache cleared")
