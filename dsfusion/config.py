"""
Configuration Module for dsfusion

Contains the tolerances of the combination engine and the settings of the
command-line front end.
"""

import json
from typing import Dict, Any
from dataclasses import dataclass, field


@dataclass
class ValidationConfig:
    """Configuration for mass distribution validity checks."""
    tolerance: float = 1e-4  # Max |sum(bpa) - 1| of a valid distribution


@dataclass
class CombinationConfig:
    """Configuration for the combination rules."""
    total_conflict_epsilon: float = 1e-12  # 1 - K at or below this is total conflict
    default_rule: str = "dempster"  # Rule used by the CLI when none is given


@dataclass
class LoggingConfig:
    """Configuration for CLI logging."""
    level: str = "INFO"
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class FusionConfig:
    """Complete configuration for dsfusion."""
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    combination: CombinationConfig = field(default_factory=CombinationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            'validation': {
                'tolerance': self.validation.tolerance,
            },
            'combination': {
                'total_conflict_epsilon': self.combination.total_conflict_epsilon,
                'default_rule': self.combination.default_rule,
            },
            'logging': {
                'level': self.logging.level,
                'format': self.logging.format,
            },
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'FusionConfig':
        """Create config from dictionary. Unknown keys are ignored."""
        config = cls()

        if 'validation' in config_dict:
            for k, v in config_dict['validation'].items():
                if hasattr(config.validation, k):
                    setattr(config.validation, k, v)

        if 'combination' in config_dict:
            for k, v in config_dict['combination'].items():
                if hasattr(config.combination, k):
                    setattr(config.combination, k, v)

        if 'logging' in config_dict:
            for k, v in config_dict['logging'].items():
                if hasattr(config.logging, k):
                    setattr(config.logging, k, v)

        return config

    @classmethod
    def from_file(cls, path: str) -> 'FusionConfig':
        """Load config from a JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)


# Default configuration instance
DEFAULT_CONFIG = FusionConfig()
