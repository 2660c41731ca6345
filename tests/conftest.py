"""Test fixtures and configuration."""

import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple
from unittest.mock import patch
from urllib.parse import unquote

import httpx
import pytest

from torque_context_mcp.auth import AuthManager
from torque_context_mcp.client import TorqueClient
from torque_context_mcp.config import APIConfig, Config

_EMPTY = object()


@pytest.fixture(scope="session", autouse=True)
def test_environment():
    """Set up test environment."""
    # Ensure we're in the right directory
    original_cwd = os.getcwd()
    repo_root = Path(__file__).parent.parent
    os.chdir(repo_root)

    yield

    # Cleanup
    os.chdir(original_cwd)


@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    return {"TORQUE_TOKEN": "test-token-introspection-123"}


class FakeTorqueServer:
    """In-memory Torque API serving the three endpoints used by the pipeline.

    Every request is logged with its decoded path values.
    """

    def __init__(self) -> None:
        self.environments: Dict[Tuple[str, str], Any] = {}
        self.introspection: Dict[str, List[Dict[str, Any]]] = {}
        self.workflows: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self.failing_grains: Set[str] = set()
        self.failing_resources: Set[str] = set()
        self.environment_status = 200
        self.delay = 0.0
        self.requests: List[Tuple[str, ...]] = []
        self.raw_paths: List[str] = []
        self.auth_headers: List[Optional[str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add_environment(self, space_name: str, environment_id: str, payload: Any):
        self.environments[(space_name, environment_id)] = payload

    def add_empty_environment(self, space_name: str, environment_id: str):
        self.environments[(space_name, environment_id)] = _EMPTY

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_for(self, kind: str) -> List[Tuple[str, ...]]:
        return [r for r in self.requests if r[0] == kind]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self._route(request)
        finally:
            self.in_flight -= 1

    def _route(self, request: httpx.Request) -> httpx.Response:
        raw_path = request.url.raw_path.split(b"?")[0].decode("ascii")
        self.raw_paths.append(raw_path)
        self.auth_headers.append(request.headers.get("Authorization"))
        parts = [unquote(p) for p in raw_path.strip("/").split("/")]

        if len(parts) < 5 or parts[:2] != ["api", "spaces"] or parts[3] != "environments":
            return httpx.Response(404, json={"error": "Endpoint not found"})
        space_name, environment_id = parts[2], parts[4]

        if len(parts) == 7 and parts[5] == "introspection":
            grain_name = parts[6]
            self.requests.append(
                ("introspection", space_name, environment_id, grain_name)
            )
            if grain_name in self.failing_grains:
                return httpx.Response(500, json={"error": "introspection failed"})
            return httpx.Response(
                200,
                json={
                    "resources": self.introspection.get(grain_name, []),
                    "errors": [],
                },
            )

        if len(parts) == 6 and parts[5] == "workflows_v2":
            grain_path = request.url.params.get("grain_path", "")
            resource_id = request.url.params.get("resource_id", "")
            self.requests.append(
                ("workflows", space_name, environment_id, grain_path, resource_id)
            )
            if resource_id in self.failing_resources:
                return httpx.Response(500, json={"error": "workflows failed"})
            return httpx.Response(
                200,
                json={
                    "instantiations": self.workflows.get((grain_path, resource_id), [])
                },
            )

        if len(parts) == 5:
            self.requests.append(("environment", space_name, environment_id))
            if self.environment_status != 200:
                return httpx.Response(self.environment_status, json={"error": "boom"})
            payload = self.environments.get((space_name, environment_id))
            if payload is _EMPTY:
                return httpx.Response(200, content=b"")
            if payload is None:
                return httpx.Response(404, json={"error": "Environment not found"})
            return httpx.Response(200, json=payload)

        return httpx.Response(404, json={"error": "Endpoint not found"})


@pytest.fixture
def fake_server() -> FakeTorqueServer:
    return FakeTorqueServer()


@pytest.fixture
def config() -> Config:
    return Config(api=APIConfig(base_url="https://torque.test"))


@pytest.fixture
def client(config, fake_server, mock_env_vars):
    with patch.dict(os.environ, mock_env_vars):
        auth_manager = AuthManager(config)
    return TorqueClient(config, auth_manager, transport=fake_server.transport)


@pytest.fixture
def make_grain():
    """Factory for raw grain records as returned in ``details.state.grains``."""

    def _make(
        name: Optional[str],
        path: str = "",
        kind: str = "terraform",
        execution_host: str = "aws-agent",
        inputs: Optional[List[Dict[str, Any]]] = None,
        current_state: str = "Deployed",
        stages: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        grain: Dict[str, Any] = {
            "path": path or f"grains/{name}",
            "kind": kind,
            "execution_host": execution_host,
            "inputs": inputs if inputs is not None else [],
            "state": {
                "current_state": current_state,
                "stages": stages if stages is not None else [],
            },
        }
        if name is not None:
            grain["name"] = name
        return grain

    return _make


@pytest.fixture
def make_environment():
    """Factory for raw environment descriptions."""

    def _make(
        environment_id: str = "env-1",
        space_name: str = "prod",
        status: str = "active",
        grains: Optional[List[Dict[str, Any]]] = None,
        inputs: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        return {
            "owner": {"first_name": "Test", "last_name": "User"},
            "is_workflow": False,
            "details": {
                "id": environment_id,
                "computed_status": status,
                "state": {"status": "Active", "grains": grains or []},
                "definition": {
                    "metadata": {
                        "name": f"Environment {environment_id}",
                        "space_name": space_name,
                    },
                    "inputs": inputs if inputs is not None else [],
                    "outputs": [],
                },
                "estimated_launch_duration_in_seconds": 300,
            },
        }

    return _make


@pytest.fixture
def make_resource():
    def _make(name: str, type: str = "aws_instance", **extra: Any) -> Dict[str, Any]:
        resource = {
            "name": name,
            "type": type,
            "dependency_identifier": f"{type}.{name}",
        }
        resource.update(extra)
        return resource

    return _make


@pytest.fixture
def make_instantiation():
    def _make(blueprint_name: str, inputs: Optional[List[Tuple[str, str]]] = None):
        return {
            "id": f"{blueprint_name}-id",
            "name": f"{blueprint_name}__instantiation__20251023_160510_199",
            "scope": "env_resource",
            "inputs": [
                {"name": n, "value": None, "type": t, "allowed_values": []}
                for n, t in (inputs or [])
            ],
            "env_references": [],
            "blueprint_name": blueprint_name,
            "blueprint_store": "torque_iac",
            "triggers": [],
            "enabled": True,
        }

    return _make
