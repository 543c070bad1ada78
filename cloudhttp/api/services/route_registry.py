"""
Route registry (method table).

Central map from path to normalized method to registration. Rejects
duplicate and overlapping registrations at declaration time and answers,
at request time, which registration serves a concrete (method, path).

Note:
    Paths that differ only in parameter names (`/a/{x}` and `/a/{y}`) or in a
    trailing slash overlap; the gateway cannot tell them apart, so they
    conflict when registered for the same method.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.methods import ANY_METHOD, display_method, method_matches, normalize_method
from ..core.path_pattern import PathPattern, normalize_path
from ..exceptions import RouteConflictError
from ..models.routes import Route

logger = logging.getLogger("cloudhttp.api.registry")


@dataclass(frozen=True)
class Registration:
    method: str
    path: str
    pattern: PathPattern
    route: Route


class RouteRegistry:
    def __init__(self) -> None:
        self._table: Dict[str, Dict[str, Registration]] = {}
        # (method, path shape) -> registered path
        self._shapes: Dict[Tuple[str, str], str] = {}
        self._ordered: List[Registration] = []

    def add(self, method: str, path: str, route: Route) -> Registration:
        """
        Register route for (method, path).

        Raises:
            UnsupportedMethodError: method is not supported.
            RouteConflictError: the slot, or an overlapping one, is taken.
        """
        normalized, path, pattern = self.ensure_available(method, path)

        registration = Registration(method=normalized, path=path, pattern=pattern, route=route)
        self._table.setdefault(path, {})[normalized] = registration
        self._shapes[(normalized, pattern.shape)] = path
        self._ordered.append(registration)
        logger.debug(
            "Registered route",
            extra={"method": display_method(normalized), "path": path, "kind": type(route).__name__},
        )
        return registration

    def ensure_available(self, method: str, path: str) -> Tuple[str, str, PathPattern]:
        """Validate a slot without registering it; returns (method, path, pattern)."""
        normalized = normalize_method(method)
        path = normalize_path(path)
        pattern = PathPattern.compile(path)
        if (normalized, pattern.shape) in self._shapes:
            raise RouteConflictError(display_method(normalized), path)
        return normalized, path, pattern

    def get(self, method: str, path: str) -> Optional[Registration]:
        """Exact lookup by declared (method, path)."""
        return self._table.get(normalize_path(path), {}).get(normalize_method(method))

    def match(self, method: str, path: str) -> Optional[Tuple[Registration, Dict[str, str]]]:
        """
        Resolve the registration serving a concrete request.

        Literal paths win over parameterized ones, greedy parameters come
        last, and a concrete method wins over ANY on the same path.
        """
        candidates = []
        for methods in self._table.values():
            for registration in methods.values():
                if not method_matches(registration.method, method):
                    continue
                params = registration.pattern.match(path)
                if params is None:
                    continue
                exact = 1 if registration.method == ANY_METHOD else 0
                candidates.append((registration.pattern.specificity, exact, registration, params))
        if not candidates:
            return None
        candidates.sort(key=lambda c: (c[0], c[1]))
        _, _, registration, params = candidates[0]
        return registration, params

    def registrations(self) -> List[Registration]:
        """All registrations in declaration order."""
        return list(self._ordered)

    def __iter__(self) -> Iterator[Registration]:
        return iter(self.registrations())

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        method, path = key
        return self.get(method, path) is not None
