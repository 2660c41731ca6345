"""Artifact serialization for simplified environment documents."""

import json
import logging
from typing import Any, Dict

import yaml

from .models import GrainDetails, SimplifiedEnvironmentDocument, WorkflowSummary

logger = logging.getLogger(__name__)


def _workflow_to_dict(workflow: WorkflowSummary) -> Dict[str, Any]:
    return {
        "name": workflow.name,
        "inputs": [{"name": i.name, "type": i.type} for i in workflow.inputs],
        "resources": list(workflow.resources),
    }


def _grain_to_dict(grain: GrainDetails) -> Dict[str, Any]:
    return {
        "path": grain.path,
        "kind": grain.kind,
        "execution_host": grain.execution_host,
        "inputs": [{"name": i.name, "value": i.value} for i in grain.inputs],
        "state": {
            "current_state": grain.state.current_state,
            "activities": [
                {"id": a.id, "name": a.name, "status": a.status}
                for a in grain.state.activities
            ],
        },
        "resources": [{"name": r.name, "type": r.type} for r in grain.resources],
        "workflows": [_workflow_to_dict(w) for w in grain.workflows],
    }


def document_to_dict(document: SimplifiedEnvironmentDocument) -> Dict[str, Any]:
    """Convert a document to plain data, keys in data model order."""
    return {
        "environment_id": document.environment_id,
        "space_name": document.space_name,
        "status": document.status,
        "inputs": [{"name": i.name, "value": i.value} for i in document.inputs],
        "grains": {
            name: _grain_to_dict(grain) for name, grain in document.grains.items()
        },
    }


class ArtifactSerializer:
    """Renders a document as YAML (default) or JSON text."""

    FORMATS = ("yaml", "json")

    def __init__(self, output_format: str = "yaml"):
        if output_format not in self.FORMATS:
            raise ValueError(f"Unknown artifact format: {output_format}")
        self.output_format = output_format

    @property
    def extension(self) -> str:
        return self.output_format

    def serialize(self, document: SimplifiedEnvironmentDocument) -> str:
        data = document_to_dict(document)
        if self.output_format == "json":
            return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

        # Serialize as YAML for better LLM readability
        return yaml.safe_dump(
            data, sort_keys=False, default_flow_style=False, allow_unicode=True
        )

    def __call__(self, document: SimplifiedEnvironmentDocument) -> str:
        return self.serialize(document)
