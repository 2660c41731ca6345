"""Tests for the Torque API client."""

import os
from unittest.mock import patch

import httpx
import pytest

from torque_context_mcp.auth import AuthManager
from torque_context_mcp.client import TorqueClient, encode_segment


def test_encode_segment():
    assert encode_segment("test space") == "test%20space"
    assert encode_segment("env/with/slashes") == "env%2Fwith%2Fslashes"
    assert encode_segment("plain-name_1.0") == "plain-name_1.0"


@pytest.mark.asyncio
async def test_environment_request_is_encoded_and_decoded(
    client, fake_server, make_environment
):
    space_name = "test space with spaces"
    environment_id = "test-env/with/slashes"
    fake_server.add_environment(space_name, environment_id, make_environment())

    data = await client.get_environment_details(space_name, environment_id)

    assert data["details"]["id"] == "env-1"
    assert fake_server.requests == [("environment", space_name, environment_id)]
    assert fake_server.raw_paths == [
        "/api/spaces/test%20space%20with%20spaces/environments/test-env%2Fwith%2Fslashes"
    ]


@pytest.mark.asyncio
async def test_bearer_token_is_sent(client, fake_server, make_environment):
    fake_server.add_environment("prod", "env-1", make_environment())

    await client.get_environment_details("prod", "env-1")

    assert fake_server.auth_headers == ["Bearer test-token-introspection-123"]


@pytest.mark.asyncio
async def test_request_without_token_is_still_sent(
    config, fake_server, make_environment
):
    fake_server.add_environment("prod", "env-1", make_environment())
    with patch.dict(os.environ, {}, clear=True):
        auth_manager = AuthManager(config)
    client = TorqueClient(config, auth_manager, transport=fake_server.transport)

    await client.get_environment_details("prod", "env-1")

    assert fake_server.auth_headers == [None]


@pytest.mark.asyncio
async def test_introspection_returns_resources(client, fake_server, make_resource):
    fake_server.introspection["my-grain"] = [
        make_resource(
            "my-grain-resource-1",
            attributes={"instance_type": "t3.medium"},
            tags={"Name": "my-grain-instance"},
        )
    ]

    data = await client.get_environment_introspection("prod", "env-1", "my-grain")

    assert data["resources"][0]["attributes"]["instance_type"] == "t3.medium"
    assert fake_server.requests == [("introspection", "prod", "env-1", "my-grain")]


@pytest.mark.asyncio
async def test_introspection_error_is_raised(client, fake_server):
    fake_server.failing_grains.add("db")

    with pytest.raises(httpx.HTTPStatusError):
        await client.get_environment_introspection("prod", "env-1", "db")


@pytest.mark.asyncio
async def test_workflows_sent_as_query_parameters(
    client, fake_server, make_instantiation
):
    fake_server.workflows[("charts/hello world", "Pod.hello")] = [
        make_instantiation("kubectl_logs", [("target-namespace", "string")])
    ]

    data = await client.get_resource_workflows(
        "prod", "env-1", "charts/hello world", "Pod.hello"
    )

    assert data["instantiations"][0]["blueprint_name"] == "kubectl_logs"
    assert fake_server.requests == [
        ("workflows", "prod", "env-1", "charts/hello world", "Pod.hello")
    ]
    assert fake_server.raw_paths == ["/api/spaces/prod/environments/env-1/workflows_v2"]


@pytest.mark.asyncio
async def test_empty_body_returns_none(client, fake_server):
    fake_server.add_empty_environment("prod", "env-1")

    assert await client.get_environment_details("prod", "env-1") is None
