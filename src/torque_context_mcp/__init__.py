"""Package initialization for torque_context_mcp."""

__version__ = "0.1.0"
__author__ = "Torque Labs"
__description__ = "Torque environment context aggregation and MCP server"

from .config import Config
from .pipeline import PipelineOrchestrator, PipelineResult
from .serializer import ArtifactSerializer
from .transformer import DetailsTransformer

__all__ = [
    "Config",
    "PipelineOrchestrator",
    "PipelineResult",
    "ArtifactSerializer",
    "DetailsTransformer",
]
