"""Configuration models for the requirements generator."""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# --- CUSTOM EXCEPTIONS ---

class RequirementsGeneratorError(Exception):
    """Base exception for requirements generator errors."""


class ConfigError(RequirementsGeneratorError):
    """Configuration loading error."""


# --- CONFIGURATION DATACLASSES ---

@dataclass
class ProjectConfig:
    """Configuration for project-specific paths."""
    output_dir: Path = Path("output")
    store_dir: Path = Path(".projects")
    document_file: str = "requirements.md"
    analysis_prompt_file: Path | None = None
    synthesis_prompt_file: Path | None = None

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        self.store_dir = Path(self.store_dir)
        if self.analysis_prompt_file is not None:
            self.analysis_prompt_file = Path(self.analysis_prompt_file)
        if self.synthesis_prompt_file is not None:
            self.synthesis_prompt_file = Path(self.synthesis_prompt_file)


@dataclass
class ModelConfig:
    """Configuration for AI model settings."""
    name: str = "gemini-2.5-flash"
    timeout: int = 600
    synthesis_temperature: float = 0.2
    validate_model: bool = False


@dataclass
class RetryConfig:
    """Bounded exponential backoff applied to every model call."""
    max_retries: int = 5
    base_delay: float = 1.0
    max_jitter: float = 1.0


@dataclass
class ProcessingConfig:
    """Configuration for archive entry filtering."""
    ignore_prefixes: list[str] = field(default_factory=lambda: ["__MACOSX/"])
    ignore_filenames: list[str] = field(default_factory=lambda: [".DS_Store"])
    max_file_chars: int = 0


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""
    level: str = "INFO"


# --- HELPER FUNCTIONS ---

def safe_load_dataclass(dclass_type, data: dict | None, section_name: str):
    """Safely load a dataclass from a dictionary.

    Ignores unknown keys and logs warnings for them. A missing section
    yields the dataclass defaults.

    Args:
        dclass_type: Dataclass type to instantiate
        data: Dictionary with configuration data
        section_name: Name of config section (for logging)

    Returns:
        Instance of dclass_type with filtered data
    """
    valid_keys = {f.name for f in fields(dclass_type)}
    filtered_data = {}

    for k, v in (data or {}).items():
        if k in valid_keys:
            filtered_data[k] = v
        else:
            logger.warning(
                "Config warning: Unknown key '%s' in section '%s' ignored.",
                k, section_name
            )

    try:
        return dclass_type(**filtered_data)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid '{section_name}' section: {e}") from e


@dataclass
class AppConfig:
    """Main application configuration container."""
    project: ProjectConfig = field(default_factory=ProjectConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | str) -> 'AppConfig':
        """Load application configuration from a YAML file.

        Args:
            config_path: Path to config.yaml file

        Returns:
            AppConfig instance with loaded configuration

        Raises:
            ConfigError: If file not found or YAML parsing fails
        """
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Configuration file '{path}' not found.")

        try:
            with path.open('r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file '{path}' must contain a mapping.")

        return cls(
            project=safe_load_dataclass(ProjectConfig, data.get('project'), 'project'),
            model=safe_load_dataclass(ModelConfig, data.get('model'), 'model'),
            retry=safe_load_dataclass(RetryConfig, data.get('retry'), 'retry'),
            processing=safe_load_dataclass(
                ProcessingConfig, data.get('processing'), 'processing'
            ),
            logging=safe_load_dataclass(LoggingConfig, data.get('logging'), 'logging'),
        )
