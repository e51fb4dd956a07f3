"""
Configuration Management for the Relationship Engine
Uses Pydantic for validation and type safety
"""
from __future__ import annotations

import os
from enum import Enum
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .utils.errors import ConfigurationError
from .utils.logging import setup_logging


class DatabaseType(str, Enum):
    """Database families a schema snapshot can come from"""
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    MSSQL = "mssql"
    ORACLE = "oracle"
    SQLITE = "sqlite"
    MONGODB = "mongodb"


class LogLevel(str, Enum):
    """Log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RelationshipConfig(BaseModel):
    """Relationship discovery and inference settings"""
    include_inferred: bool = True
    inference_confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    auto_detect_junctions: bool = True
    # singular -> plural pairs the inflection engine gets wrong for this schema
    plural_overrides: Dict[str, str] = Field(default_factory=dict)

    @field_validator('plural_overrides')
    @classmethod
    def normalize_overrides(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {k.lower(): val.lower() for k, val in v.items()}


class SamplingConfig(BaseModel):
    """Multiplicity sampling settings"""
    enabled: bool = False
    sample_size: int = Field(default=10000, ge=1, le=10_000_000)
    max_workers: int = Field(default=4, ge=1, le=64)
    query_timeout: float = Field(default=5.0, gt=0.0, le=600.0)
    tolerance: float = Field(default=1.1, ge=1.0, le=10.0)


class GraphConfig(BaseModel):
    """Join path search settings"""
    max_hops: int = Field(default=4, ge=1, le=32)


class EngineConfig(BaseModel):
    """Main engine configuration"""
    relationships: RelationshipConfig = Field(default_factory=RelationshipConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    log_level: LogLevel = LogLevel.INFO
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create configuration from environment variables"""
        try:
            return cls(
                relationships=RelationshipConfig(
                    include_inferred=os.getenv("REL_INCLUDE_INFERRED", "true").lower() == "true",
                    inference_confidence_threshold=float(os.getenv("REL_CONFIDENCE_THRESHOLD", "0.7")),
                    auto_detect_junctions=os.getenv("REL_DETECT_JUNCTIONS", "true").lower() == "true",
                ),
                sampling=SamplingConfig(
                    enabled=os.getenv("REL_SAMPLING_ENABLED", "false").lower() == "true",
                    sample_size=int(os.getenv("REL_SAMPLE_SIZE", "10000")),
                    max_workers=int(os.getenv("REL_SAMPLING_WORKERS", "4")),
                    query_timeout=float(os.getenv("REL_QUERY_TIMEOUT", "5.0")),
                ),
                graph=GraphConfig(
                    max_hops=int(os.getenv("REL_MAX_HOPS", "4")),
                ),
                log_level=LogLevel(os.getenv("LOG_LEVEL", "INFO")),
                json_logs=os.getenv("LOG_JSON", "false").lower() == "true",
            )
        except (ValueError, PydanticValidationError) as e:
            raise ConfigurationError(
                f"Invalid engine configuration in environment: {e}",
                original_error=e,
            ) from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Create configuration from a plain mapping"""
        try:
            return cls.model_validate(data or {})
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid engine configuration: {e}",
                original_error=e,
            ) from e

    @classmethod
    def from_yaml(cls, path: str) -> "EngineConfig":
        """Load configuration from a YAML file"""
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not read configuration file '{path}': {e}",
                config_key=path,
                original_error=e,
            ) from e

        return cls.from_dict(data)

    def apply_logging(self) -> None:
        """Configure root logging from log_level and json_logs"""
        setup_logging(self.log_level.value, json_format=self.json_logs)


# Global configuration instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def set_config(config: EngineConfig) -> None:
    """Set the global configuration instance"""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance"""
    global _config
    _config = None
