"""Central configuration for the ARINC 429 codec tools.

This module provides a configuration system that merges settings from
multiple sources with clear precedence rules. Configuration can be specified via:

1. CLI arguments (highest precedence)
2. Config/ICD YAML files (a top-level 'config' mapping)
3. Environment variables
4. Code defaults (lowest precedence)

Example usage:
    config = get_config(
        cli_args={'overflow': 'clamp', 'format': 'bin'},
        config_path=Path('adc.yaml'),
        use_env=True
    )

    print(f"Overflow: {config.codec.overflow}")
    print(f"Output: {config.output.format}")
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List
import os
import yaml
from pathlib import Path

from .core.encode429 import OVERFLOW_MODES

OUTPUT_FORMATS = ('hex', 'bin', 'dec')


@dataclass
class CodecConfig:
    """Codec behaviour configuration.

    Attributes:
        overflow: Handling of BNR values that do not fit the data field
        default_ssm: SSM used when a command does not give one
        no_sdi: Treat bits 8-9 as data by default
    """
    overflow: str = field(
        default='wrap',
        metadata={
            'description': 'Handling of BNR values outside the data field',
            'choices': list(OVERFLOW_MODES),
            'example': 'wrap'
        }
    )
    default_ssm: int = field(
        default=3,
        metadata={
            'description': 'SSM used when none is given (3 = Normal Operation)',
            'range': '0 to 3',
            'example': '3'
        }
    )
    no_sdi: bool = field(
        default=False,
        metadata={
            'description': 'Use the SDI bits as extra data precision by default',
            'example': 'false'
        }
    )


@dataclass
class OutputConfig:
    """Output formatting configuration.

    Attributes:
        format: How words are printed ('hex', 'bin' or 'dec')
        show_fields: Print the raw word fields after every encode
    """
    format: str = field(
        default='hex',
        metadata={
            'description': 'Word output format',
            'choices': list(OUTPUT_FORMATS),
            'example': 'hex'
        }
    )
    show_fields: bool = field(
        default=False,
        metadata={
            'description': 'Print raw word fields after encoding',
            'example': 'false'
        }
    )


@dataclass
class Config:
    """Central configuration for the codec tools.

    Attributes:
        codec: Codec behaviour configuration
        output: Output formatting configuration
        verbose: Enable verbose logging and output
    """
    codec: CodecConfig = field(default_factory=CodecConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    verbose: bool = field(
        default=False,
        metadata={
            'description': 'Enable verbose logging and output',
            'example': 'false'
        }
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary with selective merging.

        Unknown keys are ignored so that config sections can live inside
        larger YAML documents.

        Args:
            data: Dictionary containing configuration data

        Returns:
            New Config instance with merged values

        Example:
            config = Config.from_dict({
                'codec': {'overflow': 'clamp'},
                'output': {'format': 'bin'},
            })
        """
        return _merge_section(cls(), data)

    @classmethod
    def from_yaml(cls, path: Path) -> 'Config':
        """Load config from the 'config' section of a YAML file.

        Raises:
            FileNotFoundError: If the YAML file doesn't exist
            yaml.YAMLError: If the YAML file is malformed
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data.get('config', {}))

    @classmethod
    def from_env(cls) -> 'Config':
        """Create config from environment variables.

        Environment Variables:
            A429_OVERFLOW: Overflow mode (wrap, clamp, error)
            A429_FORMAT: Output format (hex, bin, dec)
            A429_NO_SDI: Use no-SDI layout by default (any value)
            A429_VERBOSE: Verbose output (any value)
        """
        config = cls()

        if os.getenv('A429_OVERFLOW'):
            config.codec.overflow = os.getenv('A429_OVERFLOW')

        if os.getenv('A429_FORMAT'):
            config.output.format = os.getenv('A429_FORMAT')

        if os.getenv('A429_NO_SDI'):
            config.codec.no_sdi = True

        if os.getenv('A429_VERBOSE'):
            config.verbose = True

        return config

    def merge_cli_args(self, **kwargs) -> None:
        """Merge CLI arguments (highest precedence).

        None values mean "not given on the command line" and leave the
        current setting alone.
        """
        if kwargs.get('overflow'):
            self.codec.overflow = kwargs['overflow']

        if kwargs.get('format'):
            self.output.format = kwargs['format']

        if kwargs.get('ssm') is not None:
            self.codec.default_ssm = kwargs['ssm']

        if kwargs.get('no_sdi'):
            self.codec.no_sdi = True

        if kwargs.get('show_fields'):
            self.output.show_fields = True

        if kwargs.get('verbose'):
            self.verbose = True

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.codec.overflow not in OVERFLOW_MODES:
            errors.append(f"Overflow mode must be one of {OVERFLOW_MODES}, got '{self.codec.overflow}'")

        if not (0 <= self.codec.default_ssm <= 3):
            errors.append(f"Default SSM must be 0-3, got {self.codec.default_ssm}")

        if self.output.format not in OUTPUT_FORMATS:
            errors.append(f"Output format must be one of {OUTPUT_FORMATS}, got '{self.output.format}'")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def summary(self) -> str:
        """Generate one-line summary of resolved configuration.

        Example:
            print(config.summary())
            # Output: "Config[overflow=wrap, ssm=3, no_sdi=False, format=hex]"
        """
        return (
            f"Config[overflow={self.codec.overflow}, "
            f"ssm={self.codec.default_ssm}, "
            f"no_sdi={self.codec.no_sdi}, "
            f"format={self.output.format}]"
        )


def get_config(cli_args: Optional[Dict] = None,
               config_path: Optional[Path] = None,
               use_env: bool = True) -> Config:
    """Get merged configuration from all sources with proper precedence.

    Args:
        cli_args: Command-line arguments dictionary
        config_path: YAML file with a 'config' section
        use_env: Whether to apply environment variable overrides

    Returns:
        Fully resolved Config instance

    Raises:
        ValueError: If the resolved configuration is invalid
    """
    config = Config()

    if use_env:
        env_config = Config.from_env()
        if env_config.codec.overflow != config.codec.overflow:
            config.codec.overflow = env_config.codec.overflow
        if env_config.output.format != config.output.format:
            config.output.format = env_config.output.format
        if env_config.codec.no_sdi:
            config.codec.no_sdi = True
        if env_config.verbose:
            config.verbose = True

    if config_path is not None:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        file_section = data.get('config', {}) if isinstance(data, dict) else {}
        config = _merge_section(config, file_section)

    if cli_args:
        config.merge_cli_args(**cli_args)

    errors = config.validate()
    if errors:
        raise ValueError("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))

    return config


def _merge_section(config: Config, data: Dict[str, Any]) -> Config:
    """Overlay a 'config' section onto an existing config."""
    for section in ('codec', 'output'):
        target = getattr(config, section)
        for k, v in data.get(section, {}).items():
            if hasattr(target, k):
                setattr(target, k, v)

    if 'verbose' in data:
        config.verbose = data['verbose']

    return config


def format_word(word: int, fmt: str = 'hex') -> str:
    """Render a 32-bit word in the configured output format."""
    if fmt == 'hex':
        return f"0x{word:08X}"
    if fmt == 'bin':
        # Grouped as parity+SSM | data | SDI | label
        bits = f"{word:032b}"
        return f"{bits[0:3]} {bits[3:22]} {bits[22:24]} {bits[24:32]}"
    if fmt == 'dec':
        return str(word)
    raise ValueError(f"Invalid output format: '{fmt}'. Must be one of {OUTPUT_FORMATS}")
