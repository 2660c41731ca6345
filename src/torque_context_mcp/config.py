"""Configuration management for the Torque environment context server.

This module handles loading and validating the server's configuration:
where the Torque API lives, which paths its endpoints use, how much
concurrency the aggregation pipeline may use, and where artifacts are
written.
"""

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


class APIConfig(BaseModel):
    """Connection settings for the Torque API."""

    base_url: str = Field(
        default="https://portal.qtorque.io", description="Torque API base URL"
    )
    timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds"
    )
    token_env: str = Field(
        default="TORQUE_TOKEN",
        description="Environment variable holding the bearer token",
    )
    user_agent: str = Field(default="Torque-Context-MCP/0.1.0")
    verify_ssl: bool = Field(default=True)


class EndpointsConfig(BaseModel):
    """Path templates for the remote endpoints used by the pipeline.

    Placeholders are filled with percent-encoded values.
    """

    environment: str = Field(
        default="/api/spaces/{space_name}/environments/{environment_id}"
    )
    introspection: str = Field(
        default=(
            "/api/spaces/{space_name}/environments/{environment_id}"
            "/introspection/{grain_name}"
        )
    )
    workflows: str = Field(
        default="/api/spaces/{space_name}/environments/{environment_id}/workflows_v2"
    )


class PipelineConfig(BaseModel):
    """Aggregation pipeline settings."""

    max_concurrency: int = Field(
        default=4, ge=1, description="Maximum outstanding remote calls per run"
    )
    timeout: Optional[float] = Field(
        default=300.0,
        gt=0,
        description="Timeout for a whole pipeline run in seconds (null disables)",
    )


class OutputConfig(BaseModel):
    """Output configuration."""

    directory: Optional[str] = Field(
        default=None, description="Artifact directory (system temp dir if unset)"
    )
    format: Literal["yaml", "json"] = Field(default="yaml")


class Config(BaseModel):
    """Main configuration class."""

    config_path: Optional[str] = Field(
        default=None, description="Path to the loaded config file"
    )
    api: APIConfig = Field(default_factory=APIConfig)
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def load(cls, config_path: str) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError(f"Invalid configuration in {config_path}: {config_data}")

        config_data.pop("config_path", None)
        config = cls(**config_data)
        config.config_path = config_path
        return config

    @classmethod
    def load_or_default(cls, config_path: Optional[str]) -> "Config":
        """Load configuration if the file exists, otherwise use defaults."""
        if config_path and Path(config_path).exists():
            return cls.load(config_path)
        return cls()

    def save(self, config_path: str) -> None:
        """Save configuration to a YAML file."""
        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(exclude={"config_path"})

        with open(path, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
