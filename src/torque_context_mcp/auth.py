"""Authentication header management for the Torque API."""

import logging
import os
from typing import Dict, Optional

from .config import Config

logger = logging.getLogger(__name__)


class AuthManager:
    """Supplies the bearer token header for Torque API requests."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config
        self.token_env = config.api.token_env
        self.token: Optional[str] = os.getenv(self.token_env)

        # Log credential availability (without exposing values)
        logger.info(f"AuthManager initialized:")
        logger.info(f"  - {self.token_env} available: {bool(self.token)}")

    async def get_auth_header(self) -> Dict[str, str]:
        """Get the authentication header."""
        if not self.token:
            logger.error(
                f"{self.token_env} environment variable is required for Torque API"
            )
            raise ValueError(
                f"{self.token_env} environment variable is required for Torque API"
            )

        logger.debug(f"Using bearer token from {self.token_env}")
        return {"Authorization": f"Bearer {self.token}"}
