"""Transforms full environment details into a simplified document.

Only the fields relevant to chat context survive: identity, status,
environment inputs and, per grain, its inputs, state, resources and
workflows. The transform never raises on missing data; absent values become
blanks or empty collections.
"""

from typing import Any, Dict, List, Mapping, Sequence

from .models import (
    Activity,
    GrainDetails,
    GrainState,
    InputValue,
    IntrospectedResource,
    ResourceRef,
    SimplifiedEnvironmentDocument,
)


def _get(data: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _inputs(items: Any) -> tuple:
    # Pairs missing either field are dropped
    return tuple(
        InputValue(name=_text(item["name"]), value=_text(item["value"]))
        for item in _list(items)
        if isinstance(item, dict)
        and item.get("name") is not None
        and item.get("value") is not None
    )


def _activities(stages: Any) -> tuple:
    activities = []
    for stage in _list(stages):
        for activity in _list(_get(stage, "activities")):
            if not isinstance(activity, dict):
                continue
            activities.append(
                Activity(
                    id=_text(activity.get("id")),
                    name=_text(activity.get("name")),
                    status=_text(activity.get("status")),
                )
            )
    return tuple(activities)


class DetailsTransformer:
    """Builds a :class:`SimplifiedEnvironmentDocument` from raw API data."""

    @staticmethod
    def transform(
        raw: Any,
        resources_by_grain: Mapping[str, Sequence[IntrospectedResource]],
    ) -> SimplifiedEnvironmentDocument:
        details = _get(raw, "details")

        grains: Dict[str, GrainDetails] = {}
        for grain in _list(_get(details, "state", "grains")):
            name = _get(grain, "name")
            if not isinstance(name, str) or not name or name in grains:
                continue

            resources = resources_by_grain.get(name) or []
            grains[name] = GrainDetails(
                path=_text(grain.get("path")),
                kind=_text(grain.get("kind")),
                execution_host=_text(grain.get("execution_host")),
                inputs=_inputs(grain.get("inputs")),
                state=GrainState(
                    current_state=_text(_get(grain, "state", "current_state")),
                    activities=_activities(_get(grain, "state", "stages")),
                ),
                resources=tuple(
                    ResourceRef(name=resource.name, type=resource.type)
                    for resource in resources
                ),
            )

        return SimplifiedEnvironmentDocument(
            environment_id=_text(_get(details, "id")),
            space_name=_text(_get(details, "definition", "metadata", "space_name")),
            status=_text(_get(details, "computed_status")),
            inputs=_inputs(_get(details, "definition", "inputs")),
            grains=grains,
        )
