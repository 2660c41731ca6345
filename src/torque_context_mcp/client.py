"""Authenticated HTTP client for the Torque API."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote

import httpx

from .auth import AuthManager
from .config import Config

logger = logging.getLogger(__name__)


def encode_segment(value: str) -> str:
    """Percent-encode a single path segment, slashes included."""
    return quote(value, safe="")


class TorqueClient:
    """HTTP client wrapper that adds authentication headers and endpoint helpers."""

    def __init__(
        self,
        config: Config,
        auth_manager: AuthManager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.auth_manager = auth_manager
        self.base_url = config.api.base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=config.api.timeout,
            verify=config.api.verify_ssl,
            transport=transport,
            headers={
                "User-Agent": config.api.user_agent,
                "Accept": "application/json",
            },
        )

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an authenticated request."""
        try:
            auth_header = await self.auth_manager.get_auth_header()
            headers = kwargs.get("headers", {})
            headers.update(auth_header)
            kwargs["headers"] = headers
        except Exception as e:
            logger.error(f"Auth error, sending request without credentials: {e}")

        logger.debug(f"Making {method} request to {unquote(url)}")
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request failed: {e}")
            raise

        logger.debug(f"Response status: {response.status_code}")
        if response.status_code >= 400:
            logger.error(f"Request failed with status {response.status_code}")
            logger.error(f"Response body: {response.text}")
            if response.status_code == 401:
                logger.error(
                    f"Authentication failed! Check the {self.auth_manager.token_env} token"
                )
            elif response.status_code == 403:
                logger.error("Authorization failed! The token lacks access to this space")
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET request with authentication."""
        return await self.request("GET", url, **kwargs)

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        """GET a JSON payload; ``None`` when the body is empty."""
        response = await self.get(url, **kwargs)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    def _build_path(self, template: str, **values: str) -> str:
        return template.format(
            **{key: encode_segment(value) for key, value in values.items()}
        )

    async def get_environment_details(
        self, space_name: str, environment_id: str
    ) -> Any:
        """Fetch the full environment description."""
        url = self._build_path(
            self.config.endpoints.environment,
            space_name=space_name,
            environment_id=environment_id,
        )
        logger.info(
            f"Environment details request: space={space_name} environment={environment_id}"
        )
        return await self.get_json(url)

    async def get_environment_introspection(
        self, space_name: str, environment_id: str, grain_name: str
    ) -> Dict[str, Any]:
        """Fetch the introspection data (resources) for a grain in an environment."""
        url = self._build_path(
            self.config.endpoints.introspection,
            space_name=space_name,
            environment_id=environment_id,
            grain_name=grain_name,
        )
        logger.info(
            f"Introspection request: space={space_name} "
            f"environment={environment_id} grain={grain_name}"
        )
        try:
            data = await self.get_json(url) or {}
        except Exception as e:
            logger.error(f"Error fetching introspection for grain {grain_name}: {e}")
            raise

        resources = data.get("resources") if isinstance(data, dict) else None
        logger.info(
            f"Introspection response for {grain_name}: "
            f"{len(resources) if isinstance(resources, list) else 0} resources"
        )
        return data if isinstance(data, dict) else {}

    async def get_resource_workflows(
        self,
        space_name: str,
        environment_id: str,
        grain_path: str,
        resource_id: str,
    ) -> Dict[str, Any]:
        """Fetch the workflow instantiations bound to a resource of a grain."""
        url = self._build_path(
            self.config.endpoints.workflows,
            space_name=space_name,
            environment_id=environment_id,
        )
        logger.info(
            f"Resource workflows request: space={space_name} "
            f"environment={environment_id} grain_path={grain_path} "
            f"resource={resource_id}"
        )
        try:
            data = (
                await self.get_json(
                    url, params={"grain_path": grain_path, "resource_id": resource_id}
                )
                or {}
            )
        except Exception as e:
            logger.error(
                f"Error fetching workflows for resource {resource_id} "
                f"in grain {grain_path}: {e}"
            )
            raise

        instantiations = data.get("instantiations") if isinstance(data, dict) else None
        logger.info(
            f"Resource workflows response for {resource_id}: "
            f"{len(instantiations) if isinstance(instantiations, list) else 0} workflows"
        )
        return data if isinstance(data, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TorqueClient":
        await self._client.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self._client.__aexit__(*args)
