from dotenv import load_dotenv
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
import json
import os

load_dotenv()  # Loads variables from .env file


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class ExtractorConfig:
    """Configuration for the extraction engine."""
    # Selector generator (last-resort tier)
    ai_fallback_enabled: bool = True
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4"
    llm_provider: str = "openai"
    llm_base_url: Optional[str] = None
    llm_timeout: float = 30.0  # seconds, single attempt
    llm_max_tokens: int = 100
    html_excerpt_chars: int = 8000  # markup sent to the generator

    # Selector cache
    cache_max_entries: int = 1000  # 0 = unbounded
    selector_overrides_path: Optional[str] = None  # JSON/YAML hierarchy overrides

    # Record assembly
    base_url: str = "https://www.zillow.com"
    identifier_suffix: str = "_zpid"
    max_images: int = 20

    # Keyword filtering of descriptions
    keywords: list[str] = field(default_factory=list)
    keyword_mode: str = "any"  # any, all, none

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """Load configuration from environment variables.

        Engine options are prefixed with HOMESCRAPE_, e.g.
        HOMESCRAPE_CACHE_MAX_ENTRIES=500. LLM credentials come from the
        shared LLM_* variables.

        Returns:
            ExtractorConfig: Configuration instance with values from environment
        """
        config = cls(
            llm_api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
            llm_model=os.getenv("LLM_MODEL", "gpt-4"),
            llm_provider=os.getenv("LLM_PROVIDER", "openai"),
            llm_base_url=os.getenv("LLM_BASE_URL") or os.getenv("OPENAI_API_BASE"),
        )
        prefix = "HOMESCRAPE_"

        for field_name, field_def in config.__dataclass_fields__.items():
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            field_type = field_def.type
            try:
                if field_type in (bool, "bool"):
                    setattr(config, field_name, _parse_bool(env_value))
                elif field_type in (int, "int"):
                    setattr(config, field_name, int(env_value))
                elif field_type in (float, "float"):
                    setattr(config, field_name, float(env_value))
                elif field_name == "keywords":
                    setattr(config, field_name, _parse_list(env_value))
                else:
                    setattr(config, field_name, env_value)
            except ValueError:
                pass  # Keep default if conversion fails

        return config

    @classmethod
    def from_file(cls, path: str) -> "ExtractorConfig":
        """Load configuration from a JSON file.

        Args:
            path: Path to JSON configuration file

        Returns:
            ExtractorConfig with values from file
        """
        config = cls()
        file_path = Path(path)

        if not file_path.exists():
            return config

        with open(file_path, 'r') as f:
            data = json.load(f)

        section = data.get('extractor', data)

        for field_name in config.__dataclass_fields__:
            if field_name in section:
                setattr(config, field_name, section[field_name])

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary, without the API key.

        Returns:
            Dictionary of all configuration values
        """
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
            if field_name != "llm_api_key"
        }
