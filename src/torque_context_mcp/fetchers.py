"""Remote fetch stages of the environment context pipeline.

Fetching the environment itself is fatal on failure; nothing downstream can
proceed without it. Introspection is fetched per grain and a failing grain
only loses its own resources.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from .client import TorqueClient
from .exceptions import EnvironmentFetchError, MissingParameterError
from .models import IntrospectedResource, ItemFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    func: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    semaphore: asyncio.Semaphore,
) -> List[R]:
    """Run ``func`` over ``items`` with at most ``semaphore`` calls in flight.

    Results come back in input order.
    """

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))


def require_parameters(space_name: str, environment_id: str) -> None:
    """Reject empty space names and environment ids before any request is made."""
    if not isinstance(space_name, str) or not space_name.strip():
        raise MissingParameterError(
            "Space name and environment ID are required",
            space_name=space_name,
            environment_id=environment_id,
        )
    if not isinstance(environment_id, str) or not environment_id.strip():
        raise MissingParameterError(
            "Space name and environment ID are required",
            space_name=space_name,
            environment_id=environment_id,
        )


class EnvironmentFetcher:
    """Retrieves the raw environment description."""

    def __init__(self, client: TorqueClient):
        self.client = client

    async def fetch(self, space_name: str, environment_id: str) -> Dict[str, Any]:
        require_parameters(space_name, environment_id)

        try:
            details = await self.client.get_environment_details(
                space_name, environment_id
            )
        except Exception as e:
            logger.error(
                f"Failed to fetch environment {environment_id} in space {space_name}: {e}"
            )
            raise EnvironmentFetchError(
                f"API request failed: {e}",
                space_name=space_name,
                environment_id=environment_id,
            ) from e

        if not details or not isinstance(details, dict):
            raise EnvironmentFetchError(
                "No data received from API",
                space_name=space_name,
                environment_id=environment_id,
            )
        return details


def extract_grain_names(raw: Any) -> List[str]:
    """Pull grain identifiers out of ``details.state.grains``.

    Missing or malformed structure yields an empty list. Grains without a
    name are skipped and duplicates keep their first position.
    """
    if not isinstance(raw, dict):
        return []
    details = raw.get("details")
    state = details.get("state") if isinstance(details, dict) else None
    grains = state.get("grains") if isinstance(state, dict) else None
    if not isinstance(grains, list):
        return []

    names: List[str] = []
    for grain in grains:
        if not isinstance(grain, dict):
            continue
        name = grain.get("name")
        if not isinstance(name, str) or not name:
            continue
        if name in names:
            logger.warning(f"Duplicate grain name '{name}' ignored")
            continue
        names.append(name)
    return names


class GrainResourceFetcher:
    """Fetches introspected resources for every grain of an environment."""

    def __init__(
        self,
        client: TorqueClient,
        semaphore: Optional[asyncio.Semaphore] = None,
    ):
        self.client = client
        self.semaphore = semaphore or asyncio.Semaphore(1)
        self.failures: List[ItemFailure] = []

    async def fetch_all(
        self, space_name: str, environment_id: str, grain_names: List[str]
    ) -> Dict[str, List[IntrospectedResource]]:
        """Return a resource list for every requested grain, empty on failure."""

        async def _fetch(grain_name: str) -> List[IntrospectedResource]:
            try:
                data = await self.client.get_environment_introspection(
                    space_name, environment_id, grain_name
                )
            except Exception as e:
                logger.error(
                    f"Failed to fetch introspection for grain {grain_name}, "
                    f"continuing with empty resources: {e}"
                )
                self.failures.append(
                    ItemFailure(
                        stage="introspection",
                        grain=grain_name,
                        resource=None,
                        error=str(e),
                    )
                )
                return []

            resources = data.get("resources")
            if not isinstance(resources, list):
                return []
            return [
                IntrospectedResource.from_api(item)
                for item in resources
                if isinstance(item, dict)
            ]

        results = await bounded_map(_fetch, grain_names, self.semaphore)
        return dict(zip(grain_names, results))
