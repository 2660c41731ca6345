"""Domain values produced by the environment context pipeline.

All values are immutable and live only for the duration of one pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class InputValue:
    name: str
    value: str


@dataclass(frozen=True)
class Activity:
    id: str
    name: str
    status: str


@dataclass(frozen=True)
class GrainState:
    current_state: str = ""
    activities: Tuple[Activity, ...] = ()


@dataclass(frozen=True)
class ResourceRef:
    """Name and type of a resource attached to a grain."""

    name: str
    type: str


@dataclass(frozen=True)
class IntrospectedResource:
    """A concrete infrastructure resource realized by a grain."""

    name: str
    type: str
    dependency_identifier: str = ""
    attributes: Optional[Dict[str, str]] = None
    tags: Optional[Dict[str, str]] = None
    depends_on: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "IntrospectedResource":
        """Build from an introspection payload entry, tolerating missing keys."""
        attributes = data.get("attributes")
        tags = data.get("tags")
        depends_on = data.get("depends_on")
        return cls(
            name=str(data.get("name") or ""),
            type=str(data.get("type") or ""),
            dependency_identifier=str(data.get("dependency_identifier") or ""),
            attributes=dict(attributes) if isinstance(attributes, dict) else None,
            tags=dict(tags) if isinstance(tags, dict) else None,
            depends_on=(
                tuple(str(d) for d in depends_on)
                if isinstance(depends_on, list)
                else None
            ),
        )


@dataclass(frozen=True)
class WorkflowInput:
    name: str
    type: str


@dataclass(frozen=True)
class WorkflowInstantiation:
    """A workflow bound to one resource, as returned by the workflows endpoint."""

    blueprint_name: str
    inputs: Tuple[WorkflowInput, ...] = ()

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "WorkflowInstantiation":
        inputs = data.get("inputs")
        return cls(
            blueprint_name=str(data.get("blueprint_name") or ""),
            inputs=tuple(
                WorkflowInput(
                    name=str(item.get("name") or ""), type=str(item.get("type") or "")
                )
                for item in (inputs if isinstance(inputs, list) else [])
                if isinstance(item, dict)
            ),
        )


@dataclass(frozen=True)
class WorkflowSummary:
    """Grain-scoped aggregate of all instantiations sharing a blueprint name.

    ``resources`` holds unique resource names in first-seen order.
    """

    name: str
    inputs: Tuple[WorkflowInput, ...] = ()
    resources: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GrainDetails:
    path: str = ""
    kind: str = ""
    execution_host: str = ""
    inputs: Tuple[InputValue, ...] = ()
    state: GrainState = field(default_factory=GrainState)
    resources: Tuple[ResourceRef, ...] = ()
    workflows: Tuple[WorkflowSummary, ...] = ()


@dataclass(frozen=True)
class SimplifiedEnvironmentDocument:
    """Normalized environment handed to serialization.

    ``grains`` preserves the order of the grain identifiers.
    """

    environment_id: str = ""
    space_name: str = ""
    status: str = ""
    inputs: Tuple[InputValue, ...] = ()
    grains: Dict[str, GrainDetails] = field(default_factory=dict)


@dataclass(frozen=True)
class ItemFailure:
    """A per-grain or per-resource failure absorbed by the pipeline."""

    stage: str
    grain: str
    resource: Optional[str]
    error: str
