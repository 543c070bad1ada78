"""
Deployment context.

Owns the state shared by everything described in one deployment run: the
infrastructure boundary, the settings, the set of resource names already
handed out, and lazily created shared resources (such as the bucket that
holds the static files of an API).
"""

import logging
from typing import Any, Callable, Dict, Optional

from .config import ApiConfig, config as default_config
from .exceptions import NameCollisionError
from .services.infrastructure import InMemoryInfrastructure, Infrastructure

logger = logging.getLogger("cloudhttp.api.context")


class DeploymentContext:
    def __init__(
        self,
        infrastructure: Optional[Infrastructure] = None,
        settings: Optional[ApiConfig] = None,
    ):
        self.config = settings or default_config
        self.infrastructure = infrastructure or InMemoryInfrastructure(self.config)
        self._names: Dict[str, str] = {}
        self._shared: Dict[str, Any] = {}

    def claim_name(self, name: str, owner: str) -> str:
        """
        Reserve a resource name for owner.

        Claiming again for the same owner returns the name; a different owner
        raises NameCollisionError.
        """
        current = self._names.get(name)
        if current is not None and current != owner:
            raise NameCollisionError(name, current)
        self._names[name] = owner
        return name

    def is_claimed(self, name: str) -> bool:
        return name in self._names

    def shared(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the shared resource under key, creating it on first use."""
        if key not in self._shared:
            logger.debug("Creating shared resource %s", key)
            self._shared[key] = factory()
        return self._shared[key]
