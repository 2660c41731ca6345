"""Main entry point for the Torque environment context tools."""

import asyncio
import logging
from typing import Any, Optional

import click
from fastmcp import FastMCP

from .auth import AuthManager
from .client import TorqueClient
from .config import Config
from .exceptions import (
    ArtifactDeliveryError,
    ContextPipelineError,
    EnvironmentFetchError,
    MissingParameterError,
)
from .fetchers import EnvironmentFetcher
from .pipeline import PipelineOrchestrator, ProgressEvent
from .serializer import ArtifactSerializer
from .sink import FileArtifactSink
from .summary import format_environment_summary

logger = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Configure logging with the specified level and suppress third-party library noise"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )

    # Set specific levels for noisy third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def user_message(error: Exception) -> str:
    """Map a fatal error to a single message for the user."""
    if isinstance(error, MissingParameterError):
        return (
            "Invalid environment parameters. "
            "Please check the space name and environment ID."
        )
    if isinstance(error, EnvironmentFetchError):
        return (
            "Unable to fetch environment details. "
            "Please check your Torque configuration and network connection."
        )
    if isinstance(error, (ArtifactDeliveryError, OSError)):
        return (
            "Unable to write the environment context file. "
            "Please check file system permissions."
        )
    return f"Failed to build environment context: {error}"


class TorqueContextServer:
    """MCP server exposing Torque environment context tools."""

    def __init__(self, config: Config, client: Optional[TorqueClient] = None):
        """Initialize the server with configuration."""
        self.config = config
        self.auth_manager = AuthManager(self.config)
        self.client = client or TorqueClient(self.config, self.auth_manager)
        self.mcp: Optional[Any] = None  # Will be initialized in initialize()

    async def get_environment_details(
        self, space_name: str, environment_id: str
    ) -> str:
        """Markdown summary of an environment; errors are returned as text."""
        try:
            details = await EnvironmentFetcher(self.client).fetch(
                space_name, environment_id
            )
            summary = format_environment_summary(details, space_name, environment_id)
        except Exception as e:
            logger.error(f"Failed to fetch environment details: {e}")
            return (
                f"❌ **Error**: Failed to fetch environment details: {e}\n\n"
                "Please check your Torque configuration and ensure the space name "
                "and environment ID are correct."
            )

        return f"## Environment Details: {environment_id}\n\n{summary}"

    async def get_environment_context(
        self, space_name: str, environment_id: str
    ) -> str:
        """Serialized environment context document; errors are returned as text."""
        orchestrator = PipelineOrchestrator(self.config, self.client)
        try:
            result = await orchestrator.run(space_name, environment_id)
        except ContextPipelineError as e:
            return f"❌ **Error**: {user_message(e)}\n\nDetails: {e}"
        return result.artifact

    async def initialize(self) -> None:
        """Create the FastMCP server and register the tools."""
        self.mcp = FastMCP(
            name="Torque Environment Context",
            instructions=(
                "This server provides the state, grains, resources and available "
                "workflows of deployed Torque environments."
            ),
        )

        @self.mcp.tool(
            name="torque_get_environment_details",
            description=(
                "Get a summary of a Torque environment: owner, cost, connections, "
                "reserved resources, annotations and environment-as-code status."
            ),
        )
        async def torque_get_environment_details(
            space_name: str, environment_id: str
        ) -> str:
            return await self.get_environment_details(space_name, environment_id)

        @self.mcp.tool(
            name="torque_get_environment_context",
            description=(
                "Get the full context of a Torque environment as YAML: inputs, "
                "grains with their state, introspected resources and workflows."
            ),
        )
        async def torque_get_environment_context(
            space_name: str, environment_id: str
        ) -> str:
            return await self.get_environment_context(space_name, environment_id)

    async def run(self) -> None:
        """Run the MCP server."""
        await self.initialize()
        assert self.mcp is not None, "MCP server must be initialized first"
        try:
            await self.mcp.run_stdio_async(show_banner=True)
        finally:
            await self.client.aclose()


@click.group()
@click.option(
    "--config", "-c", default="config/torque.yaml", help="Configuration file path"
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def main(ctx: click.Context, config: str, log_level: str) -> None:
    """Torque environment context tools."""
    _configure_logging(log_level)
    ctx.obj = Config.load_or_default(config)


@main.command()
@click.argument("space_name")
@click.argument("environment_id")
@click.option("--output-dir", "-o", default=None, help="Directory for the artifact")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(ArtifactSerializer.FORMATS),
    default=None,
    help="Artifact format (defaults to the configured format)",
)
@click.pass_obj
def fetch(
    config: Config,
    space_name: str,
    environment_id: str,
    output_dir: Optional[str],
    output_format: Optional[str],
) -> None:
    """Build the context document for ENVIRONMENT_ID in SPACE_NAME."""
    serializer = ArtifactSerializer(output_format or config.output.format)
    sink = FileArtifactSink(
        output_dir or config.output.directory, extension=serializer.extension
    )
    completed = 0

    def report(event: ProgressEvent) -> None:
        nonlocal completed
        completed += event.increment
        click.echo(f"[{completed:3d}%] {event.message}")

    async def _main() -> None:
        async with TorqueClient(config, AuthManager(config)) as client:
            orchestrator = PipelineOrchestrator(
                config, client, serializer=serializer, sink=sink, progress=report
            )
            result = await orchestrator.run(space_name, environment_id)

        if result.failures:
            click.echo(
                f"Warning: {len(result.failures)} grain/resource requests failed; "
                "the context is partial. See the logs for details."
            )
        click.echo(
            f"Environment details for {environment_id} have been written to "
            f"{result.location}"
        )

    try:
        asyncio.run(_main())
    except (ContextPipelineError, OSError) as e:
        raise click.ClickException(user_message(e)) from e


@main.command()
@click.pass_obj
def serve(config: Config) -> None:
    """Start the MCP server on stdio."""
    asyncio.run(TorqueContextServer(config).run())


if __name__ == "__main__":
    main()
