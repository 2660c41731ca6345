"""Workflow aggregation for grains of an environment.

Every resource of a grain may expose workflow instantiations. Instantiations
of the same blueprint are folded into a single :class:`WorkflowSummary` per
grain that lists all resources offering it. Summaries never cross grains.
"""

import asyncio
import dataclasses
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .client import TorqueClient
from .fetchers import bounded_map
from .models import (
    GrainDetails,
    ItemFailure,
    SimplifiedEnvironmentDocument,
    WorkflowInstantiation,
    WorkflowSummary,
)

logger = logging.getLogger(__name__)


def group_workflows(
    resource_workflows: Iterable[Tuple[str, Sequence[WorkflowInstantiation]]],
) -> Tuple[WorkflowSummary, ...]:
    """Fold (resource name, instantiations) pairs into workflow summaries.

    The first instantiation seen for a blueprint fixes its inputs and its
    position in the result. Each resource name is recorded once per summary.
    """
    grouped: Dict[str, Dict[str, list]] = {}
    for resource_name, instantiations in resource_workflows:
        for instantiation in instantiations:
            name = instantiation.blueprint_name
            if not name:
                continue
            if name not in grouped:
                grouped[name] = {"inputs": list(instantiation.inputs), "resources": []}
            if resource_name not in grouped[name]["resources"]:
                grouped[name]["resources"].append(resource_name)

    return tuple(
        WorkflowSummary(
            name=name,
            inputs=tuple(entry["inputs"]),
            resources=tuple(entry["resources"]),
        )
        for name, entry in grouped.items()
    )


class WorkflowAggregator:
    """Fetches resource workflows and attaches per-grain summaries."""

    def __init__(
        self,
        client: TorqueClient,
        semaphore: Optional[asyncio.Semaphore] = None,
    ):
        self.client = client
        self.semaphore = semaphore or asyncio.Semaphore(1)
        self.failures: List[ItemFailure] = []

    async def _fetch_resource_workflows(
        self,
        space_name: str,
        environment_id: str,
        grain_name: str,
        grain: GrainDetails,
        resource_name: str,
    ) -> Optional[List[WorkflowInstantiation]]:
        try:
            data = await self.client.get_resource_workflows(
                space_name, environment_id, grain.path, resource_name
            )
        except Exception as e:
            logger.error(
                f"Failed to fetch workflows for resource {resource_name} "
                f"in grain {grain_name}, skipping: {e}"
            )
            self.failures.append(
                ItemFailure(
                    stage="workflows",
                    grain=grain_name,
                    resource=resource_name,
                    error=str(e),
                )
            )
            return None

        instantiations = data.get("instantiations")
        if not isinstance(instantiations, list):
            return []
        return [
            WorkflowInstantiation.from_api(item)
            for item in instantiations
            if isinstance(item, dict)
        ]

    async def _grain_workflows(
        self,
        space_name: str,
        environment_id: str,
        grain_name: str,
        grain: GrainDetails,
    ) -> Tuple[WorkflowSummary, ...]:
        if not grain.resources:
            return ()

        resource_names = [resource.name for resource in grain.resources]
        results = await bounded_map(
            lambda resource_name: self._fetch_resource_workflows(
                space_name, environment_id, grain_name, grain, resource_name
            ),
            resource_names,
            self.semaphore,
        )
        workflows = group_workflows(
            (resource_name, instantiations)
            for resource_name, instantiations in zip(resource_names, results)
            if instantiations is not None
        )
        logger.info(
            f"Grain {grain_name}: {len(workflows)} workflows "
            f"across {len(resource_names)} resources"
        )
        return workflows

    async def attach_workflows(
        self,
        space_name: str,
        environment_id: str,
        document: SimplifiedEnvironmentDocument,
    ) -> SimplifiedEnvironmentDocument:
        """Return a copy of ``document`` with every grain's workflows populated."""
        grain_items = list(document.grains.items())
        summaries = await asyncio.gather(
            *(
                self._grain_workflows(space_name, environment_id, name, grain)
                for name, grain in grain_items
            )
        )
        grains = {
            name: dataclasses.replace(grain, workflows=workflows)
            for (name, grain), workflows in zip(grain_items, summaries)
        }
        return dataclasses.replace(document, grains=grains)
