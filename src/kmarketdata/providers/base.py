"""Abstract base class for upstream data providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from kmarketdata.config import RevalidateWindows
from kmarketdata.errors import ConfigurationError
from kmarketdata.http import HttpClient

logger = logging.getLogger(__name__)

# Exceptions raised while mapping an unexpected payload shape.
SHAPE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, IndexError)


class BaseProvider(ABC):
    """Abstract base for all upstream adapters.

    Adapters never raise for transport failures, non-2xx statuses or
    malformed payloads; they log and return None / [] instead. The one
    exception is a missing credential, raised as ``ConfigurationError``
    before any request is made.

    Subclasses set ``name`` (used in logs) and, when the source needs a
    key, ``credential_env``.
    """

    name: str = "provider"
    credential_env: str | None = None

    def __init__(
        self,
        http: HttpClient,
        windows: RevalidateWindows | None = None,
        api_key: str | None = None,
    ) -> None:
        self.http = http
        self.windows = windows or RevalidateWindows()
        self.api_key = api_key

    @abstractmethod
    def capabilities(self) -> set[str]:
        """Return the set of supported operations."""
        ...

    @property
    def has_credential(self) -> bool:
        return self.credential_env is None or bool(self.api_key)

    def require_credential(self) -> str:
        """Return the API key or raise ``ConfigurationError``."""
        if not self.api_key:
            env = self.credential_env or "API key"
            raise ConfigurationError(f"{env} is not configured.", env_var=self.credential_env)
        return self.api_key

    async def _get_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        ttl: float = 0,
        headers: Mapping[str, str] | None = None,
        accept: Callable[[Any], bool] | None = None,
    ) -> Any | None:
        return await self.http.get_json(
            url,
            params=params,
            ttl=ttl,
            headers=headers,
            source=self.name,
            accept=accept,
            redact=self.api_key,
        )

    def _shape_error(self, what: str, exc: Exception) -> None:
        logger.warning("%s: unexpected %s payload: %r", self.name, what, exc)
