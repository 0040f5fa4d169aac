"""
Configuration management for petrec.

Loads settings from the YAML config file and provides typed access.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of petrec package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"


@dataclass
class PetRecConfig:
    """Configuration for the pet treat recommender."""

    # Conversation flow
    initial_missing_info: List[str] = field(default_factory=lambda: ["context"])
    readiness_sentinel: str = "[READY]"
    context_confidence_threshold: float = 0.7
    history_window: int = 10            # Utterances passed to the model as context

    # Retrieval / ranking
    max_recommendations: int = 3
    product_page_size: int = 50

    # Model configuration
    conversation_model: str = "gpt-4o-mini"
    extraction_model: str = "gpt-4o-mini"
    context_model: str = "gpt-4o-mini"
    ranking_model: str = "gpt-4o-mini"
    conversation_temperature: float = 0.7
    extraction_temperature: float = 0.3
    context_temperature: float = 0.3
    ranking_temperature: float = 0.5

    # Data
    database_url: str = "sqlite:///data/petrec.db"
    breed_data_path: str = "data/pet_breed_data.json"
    breed_name_map_path: str = "data/breed_name_map.json"

    # Extra synonym entries merged over the built-in table: {field: {word: canonical}}
    synonyms: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "PetRecConfig":
        """Load configuration from YAML file. DATABASE_URL in the environment wins."""
        path = config_path or DEFAULT_CONFIG_PATH
        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        conversation = data.get('conversation', {})
        recommendation = data.get('recommendation', {})
        models = data.get('models', {})
        data_config = data.get('data', {})
        defaults = cls()

        return cls(
            initial_missing_info=conversation.get('initial_missing_info', defaults.initial_missing_info),
            readiness_sentinel=conversation.get('readiness_sentinel', defaults.readiness_sentinel),
            context_confidence_threshold=conversation.get('context_confidence_threshold', defaults.context_confidence_threshold),
            history_window=conversation.get('history_window', defaults.history_window),
            max_recommendations=recommendation.get('max_recommendations', defaults.max_recommendations),
            product_page_size=recommendation.get('product_page_size', defaults.product_page_size),
            conversation_model=models.get('conversation', defaults.conversation_model),
            extraction_model=models.get('extraction', defaults.extraction_model),
            context_model=models.get('context', defaults.context_model),
            ranking_model=models.get('ranking', defaults.ranking_model),
            conversation_temperature=models.get('conversation_temperature', defaults.conversation_temperature),
            extraction_temperature=models.get('extraction_temperature', defaults.extraction_temperature),
            context_temperature=models.get('context_temperature', defaults.context_temperature),
            ranking_temperature=models.get('ranking_temperature', defaults.ranking_temperature),
            database_url=os.getenv("DATABASE_URL") or data_config.get('database_url', defaults.database_url),
            breed_data_path=data_config.get('breed_data_path', defaults.breed_data_path),
            breed_name_map_path=data_config.get('breed_name_map_path', defaults.breed_name_map_path),
            synonyms=data.get('synonyms', {}) or {},
        )


# Global config instance
_config: Optional[PetRecConfig] = None


def get_config() -> PetRecConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = PetRecConfig.from_yaml()
    return _config


def set_config(config: PetRecConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
