"""Secrets access for the question generation service.

API keys are read from the environment (which also covers sealed platform
variables). Key discovery for the credential pool lives here so nothing else
touches ``os.environ`` directly.
"""

import logging
import os
from typing import List, Optional

logger = logging.getLogger(__name__)

GEMINI_KEY_PREFIX = "GEMINI_API_KEY"


class SecretsManager:
    """Retrieves secrets from the environment.

    Usage:
        manager = SecretsManager()
        keys = manager.discover_numbered_secrets("GEMINI_API_KEY")
    """

    def get_secret(self, name: str) -> Optional[str]:
        """Retrieve a secret by name.

        Args:
            name: Secret name (looked up upper-cased)

        Returns:
            Secret value, or None if unset or blank
        """
        value = os.environ.get(name.upper())
        if value is None or not value.strip():
            logger.debug(f"Secret '{name}' not found in environment")
            return None
        # Log that we found it without revealing the value
        logger.debug(f"Retrieved secret '{name}' from environment")
        return value.strip()

    def discover_numbered_secrets(self, prefix: str) -> List[str]:
        """Collect ``PREFIX_1``, ``PREFIX_2``, ... up to the first gap.

        Falls back to the bare ``PREFIX`` when no numbered secret exists.

        Args:
            prefix: Secret name prefix

        Returns:
            Secret values in index order; empty if none are configured
        """
        values: List[str] = []
        index = 1
        while True:
            value = self.get_secret(f"{prefix}_{index}")
            if value is None:
                break
            values.append(value)
            index += 1

        if not values:
            single = self.get_secret(prefix)
            if single is not None:
                values.append(single)

        logger.info(f"Discovered {len(values)} secret(s) for {prefix}")
        return values


_secrets_manager: Optional[SecretsManager] = None


def get_secrets_manager() -> SecretsManager:
    """Get the process-wide SecretsManager instance."""
    global _secrets_manager
    if _secrets_manager is None:
        _secrets_manager = SecretsManager()
    return _secrets_manager


def discover_gemini_api_keys(manager: Optional[SecretsManager] = None) -> List[str]:
    """Return configured Gemini API keys in rotation order."""
    return (manager or get_secrets_manager()).discover_numbered_secrets(
        GEMINI_KEY_PREFIX
    )
