"""Environment context aggregation pipeline.

Runs six ordered stages for one environment:

1. Fetch the environment description (fatal on failure).
2. Extract the grain names.
3. Fetch introspected resources per grain (per-grain failures absorbed).
4. Transform into a simplified document (a crash here is fatal).
5. Aggregate workflows per grain (per-resource failures absorbed).
6. Serialize the document and hand it to the sink.

Each completed stage reports a progress increment; the increments add up to
100. Remote calls in stages 3 and 5 share one semaphore sized by
``pipeline.max_concurrency``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .client import TorqueClient
from .config import Config
from .exceptions import ArtifactDeliveryError, PipelineTimeoutError, TransformError
from .fetchers import EnvironmentFetcher, GrainResourceFetcher, extract_grain_names
from .models import ItemFailure, SimplifiedEnvironmentDocument
from .serializer import ArtifactSerializer
from .sink import ArtifactSink
from .transformer import DetailsTransformer
from .workflows import WorkflowAggregator

logger = logging.getLogger(__name__)


class Stage(Enum):
    FETCH_ENVIRONMENT = ("Fetching environment details", 20)
    EXTRACT_GRAINS = ("Extracting grains", 10)
    FETCH_GRAIN_RESOURCES = ("Fetching grain resources", 30)
    TRANSFORM = ("Transforming environment details", 10)
    AGGREGATE_WORKFLOWS = ("Fetching resource workflows", 20)
    SERIALIZE = ("Serializing environment context", 10)

    @property
    def message(self) -> str:
        return self.value[0]

    @property
    def increment(self) -> int:
        return self.value[1]


class PipelineState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    increment: int


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class PipelineResult:
    artifact: str
    document: SimplifiedEnvironmentDocument
    failures: List[ItemFailure] = field(default_factory=list)
    location: Optional[str] = None


class PipelineOrchestrator:
    """Sequences the pipeline stages for one environment at a time."""

    def __init__(
        self,
        config: Config,
        client: TorqueClient,
        serializer: Optional[ArtifactSerializer] = None,
        sink: Optional[ArtifactSink] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.client = client
        self.serializer = serializer or ArtifactSerializer(config.output.format)
        self.sink = sink
        self.progress = progress
        self.state = PipelineState.PENDING
        self.stage: Optional[Stage] = None

    def _complete(self, stage: Stage) -> None:
        logger.debug(f"Stage complete: {stage.name}")
        if self.progress is not None:
            self.progress(
                ProgressEvent(message=stage.message, increment=stage.increment)
            )

    def _enter(self, stage: Stage) -> None:
        self.stage = stage
        logger.info(f"{stage.message}...")

    async def run(self, space_name: str, environment_id: str) -> PipelineResult:
        """Run the pipeline, raising :class:`ContextPipelineError` on fatal errors."""
        self.state = PipelineState.RUNNING
        self.stage = None
        timeout = self.config.pipeline.timeout
        try:
            if timeout is not None:
                result = await asyncio.wait_for(
                    self._run(space_name, environment_id), timeout=timeout
                )
            else:
                result = await self._run(space_name, environment_id)
        except asyncio.TimeoutError as e:
            self.state = PipelineState.FAILED
            logger.error(
                f"Pipeline timed out after {timeout}s during "
                f"{self.stage.name if self.stage else 'startup'}"
            )
            raise PipelineTimeoutError(
                f"Timed out after {timeout} seconds",
                space_name=space_name,
                environment_id=environment_id,
            ) from e
        except Exception as e:
            self.state = PipelineState.FAILED
            logger.error(f"Error building environment context: {e}")
            raise

        self.state = PipelineState.SUCCEEDED
        return result

    async def _run(self, space_name: str, environment_id: str) -> PipelineResult:
        semaphore = asyncio.Semaphore(self.config.pipeline.max_concurrency)

        self._enter(Stage.FETCH_ENVIRONMENT)
        raw = await EnvironmentFetcher(self.client).fetch(space_name, environment_id)
        self._complete(Stage.FETCH_ENVIRONMENT)

        self._enter(Stage.EXTRACT_GRAINS)
        grain_names = extract_grain_names(raw)
        logger.info(f"Found {len(grain_names)} grains: {grain_names}")
        self._complete(Stage.EXTRACT_GRAINS)

        self._enter(Stage.FETCH_GRAIN_RESOURCES)
        resource_fetcher = GrainResourceFetcher(self.client, semaphore)
        resources = await resource_fetcher.fetch_all(
            space_name, environment_id, grain_names
        )
        self._complete(Stage.FETCH_GRAIN_RESOURCES)

        self._enter(Stage.TRANSFORM)
        try:
            document = DetailsTransformer.transform(raw, resources)
        except Exception as e:
            raise TransformError(
                f"Failed to transform environment details: {e}",
                space_name=space_name,
                environment_id=environment_id,
            ) from e
        self._complete(Stage.TRANSFORM)

        self._enter(Stage.AGGREGATE_WORKFLOWS)
        aggregator = WorkflowAggregator(self.client, semaphore)
        document = await aggregator.attach_workflows(
            space_name, environment_id, document
        )
        self._complete(Stage.AGGREGATE_WORKFLOWS)

        self._enter(Stage.SERIALIZE)
        artifact = self.serializer.serialize(document)
        failures = resource_fetcher.failures + aggregator.failures
        if failures:
            logger.warning(
                f"Environment context for {environment_id} is partial: "
                f"{len(failures)} grain/resource requests failed"
            )

        location = None
        if self.sink is not None:
            try:
                location = await self.sink.deliver(
                    artifact, space_name, environment_id
                )
            except OSError as e:
                raise ArtifactDeliveryError(
                    f"Failed to write environment context: {e}",
                    space_name=space_name,
                    environment_id=environment_id,
                ) from e
        self._complete(Stage.SERIALIZE)

        return PipelineResult(
            artifact=artifact, document=document, failures=failures, location=location
        )

