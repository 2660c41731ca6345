"""Human-readable markdown summary of a raw environment description."""

import math
from typing import Any, Dict, List, Optional

MAX_LISTED_ITEMS = 5


def _section(data: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = data.get(key)
    return value if isinstance(value, dict) else None


def display_name(person: Dict[str, Any]) -> str:
    """Prefer display names, then real names, then 'Unknown'."""
    for first_key, last_key in (
        ("display_first_name", "display_last_name"),
        ("first_name", "last_name"),
    ):
        first = person.get(first_key)
        last = person.get(last_key)
        if first or last:
            return f"{first or ''} {last or ''}".strip()
    return "Unknown"


def _yes_no(value: Any) -> str:
    return "Yes" if value else "No"


def _count(value: Any) -> float:
    """Numeric count, 0 for anything that is not a number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _minutes(seconds: float) -> int:
    # Half-up, so 150s reads as 3 minutes
    return math.floor(seconds / 60 + 0.5)


def format_environment_summary(
    details: Dict[str, Any], space_name: str, environment_id: str
) -> str:
    """Render the environment's ownership, cost and status facts as markdown."""
    lines: List[str] = [
        f"**Space**: {space_name}",
        f"**Environment ID**: {environment_id}",
        "",
    ]

    if details.get("is_workflow"):
        lines.append("**Type**: Workflow Environment")
    if details.get("is_published"):
        lines.append("**Status**: Published")
    if details.get("read_only"):
        lines.append("**Access**: Read-only")
    if details.get("termination_protection_enabled"):
        lines.append("**Protection**: Termination protection enabled")
    lines.append("")

    owner = _section(details, "owner")
    if owner:
        line = f"**Owner**: {display_name(owner)}"
        if owner.get("email"):
            line += f" ({owner['email']})"
        lines.append(line)

    cost = _section(details, "cost")
    if cost:
        line = f"**Cost**: {cost.get('sum', 0)}"
        if cost.get("currency"):
            line += f" {cost['currency']}"
        if cost.get("final"):
            line += " (Final)"
        elif cost.get("incomplete"):
            line += " (Incomplete)"
        lines.append(line)
        if cost.get("last_update"):
            lines.append(f"   Last updated: {cost['last_update']}")

    if details.get("last_used"):
        lines.append(f"**Last Used**: {details['last_used']}")
    lines.append("")

    connections = _section(details, "connections")
    if connections:
        incoming = _count(connections.get("incoming_connections_count"))
        outgoing = _count(connections.get("outgoing_connections_count"))
        if incoming > 0 or outgoing > 0:
            lines.extend(
                [
                    "**Connections**:",
                    f"   Incoming: {incoming}",
                    f"   Outgoing: {outgoing}",
                    "",
                ]
            )

    reserved = details.get("reserved_resources")
    if isinstance(reserved, list) and reserved:
        lines.append(f"**Reserved Resources** ({len(reserved)}):")
        for resource in reserved[:MAX_LISTED_ITEMS]:
            if not isinstance(resource, dict):
                continue
            name = resource.get("name") or resource.get("id") or "Unknown"
            line = f"   - {name} ({resource.get('type') or 'Unknown type'})"
            if resource.get("excluded_from_reserving"):
                reason = (
                    resource.get("excluded_from_reserving_reason")
                    or "No reason provided"
                )
                line += f" - Excluded: {reason}"
            lines.append(line)
        if len(reserved) > MAX_LISTED_ITEMS:
            lines.append(f"   ... and {len(reserved) - MAX_LISTED_ITEMS} more")
        lines.append("")

    annotations = details.get("annotations")
    if isinstance(annotations, list) and annotations:
        lines.append(f"**Annotations** ({len(annotations)}):")
        for annotation in annotations[:MAX_LISTED_ITEMS]:
            if not isinstance(annotation, dict):
                continue
            if annotation.get("key") and annotation.get("value"):
                line = f"   - {annotation['key']}: {annotation['value']}"
                if annotation.get("color"):
                    line += f" [{annotation['color']}]"
                lines.append(line)
        if len(annotations) > MAX_LISTED_ITEMS:
            lines.append(f"   ... and {len(annotations) - MAX_LISTED_ITEMS} more")
        lines.append("")

    eac = _section(details, "eac")
    if eac:
        lines.extend(
            [
                "**Environment as Code**:",
                f"   Status: {eac.get('status') or 'Unknown'}",
                f"   Registered: {_yes_no(eac.get('registered'))}",
                f"   Enabled: {_yes_no(eac.get('enabled'))}",
                f"   Synced: {_yes_no(eac.get('eac_synced'))}",
            ]
        )
        if eac.get("url"):
            lines.append(f"   URL: {eac['url']}")
        errors = eac.get("errors")
        if isinstance(errors, list) and errors:
            lines.append(f"   Errors: {len(errors)}")

    metadata = _section(details, "entity_metadata")
    if metadata and details.get("is_workflow"):
        lines.extend(["", "**Workflow Details**:", f"   Type: {metadata.get('type')}"])
        if metadata.get("workflow_instantiation_name"):
            lines.append(
                f"   Instantiation: {metadata['workflow_instantiation_name']}"
            )

    inner = _section(details, "details") or {}
    duration = inner.get("estimated_launch_duration_in_seconds")
    if _count(duration):
        lines.extend(
            ["", f"**Estimated Launch Time**: {_minutes(duration)} minutes"]
        )

    return "\n".join(lines).rstrip() + "\n"
