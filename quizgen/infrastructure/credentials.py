"""Round-robin rotation over configured API keys.

Every generation attempt takes the next key from the pool, so retries after
an overloaded or throttled response land on a different key. The cursor is
shared by all requests in the process and advanced under a lock.
"""

import logging
import threading
from typing import Iterable, Optional, Tuple

from quizgen.exceptions import ConfigurationError
from quizgen.infrastructure.secrets import SecretsManager, discover_gemini_api_keys

logger = logging.getLogger(__name__)


class CredentialPool:
    """Thread-safe round-robin pool of opaque API keys."""

    def __init__(self, keys: Iterable[str]):
        """Initialize the pool.

        Args:
            keys: Keys in rotation order

        Raises:
            ConfigurationError: If no keys are given
        """
        self._keys: Tuple[str, ...] = tuple(keys)
        if not self._keys:
            raise ConfigurationError(
                "No API keys configured. Set GEMINI_API_KEY_1..N or GEMINI_API_KEY."
            )
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, manager: Optional[SecretsManager] = None) -> "CredentialPool":
        """Build a pool from the keys found in the environment."""
        keys = discover_gemini_api_keys(manager)
        pool = cls(keys)
        logger.info(f"Credential pool initialized with {pool.size} key(s)")
        return pool

    @property
    def size(self) -> int:
        return len(self._keys)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def next(self) -> Tuple[int, str]:
        """Return the next key and its index, advancing the cursor by one.

        Returns:
            Tuple of (key index, key)
        """
        with self._lock:
            index = self._cursor % len(self._keys)
            self._cursor += 1
        return index, self._keys[index]
