"""Errors that stop an environment context pipeline run."""

from typing import Optional


class ContextPipelineError(Exception):
    """Base class for fatal pipeline errors."""

    def __init__(
        self,
        message: str,
        space_name: Optional[str] = None,
        environment_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.space_name = space_name
        self.environment_id = environment_id

    def __str__(self) -> str:
        message = super().__str__()
        if self.space_name or self.environment_id:
            return (
                f"{message} (space: {self.space_name}, "
                f"environment: {self.environment_id})"
            )
        return message


class MissingParameterError(ContextPipelineError):
    """Space name or environment id was not supplied."""


class EnvironmentFetchError(ContextPipelineError):
    """The environment details request failed."""


class TransformError(ContextPipelineError):
    """The environment description could not be transformed."""


class ArtifactDeliveryError(ContextPipelineError):
    """The artifact could not be handed to the sink."""


class PipelineTimeoutError(ContextPipelineError):
    """A pipeline run exceeded its configured timeout."""
