"""Route registry owned by one agent instance.

Lifecycle:
    1. Setup code registers routes with `add`. Duplicate names fail fast with
       `DuplicateRouteError` and leave the registry untouched.
    2. The pipeline seals the registry on the first request for the agent.
       Registration after that raises `RegistrySealedError`, so route tables
       are never mutated while requests are being routed.
    3. The router reads `snapshot()`, a read-only mapping that can be shared by
       any number of concurrent requests.

There is no process-wide registry: each agent gets its own, so agents with
different route sets can coexist in one process.
"""

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from conduit.core.errors import DuplicateRouteError, RegistrySealedError
from conduit.core.types import Route


class RouteRegistry:

    def __init__(self, routes: Iterable[Route] = ()):
        self._routes: dict[str, Route] = {}
        self._sealed = False
        self._snapshot: Mapping[str, Route] | None = None
        for route in routes:
            self.add(route)

    def add(self, route: Route) -> None:
        if route.name in self._routes:
            raise DuplicateRouteError(route.name)
        if self._sealed:
            raise RegistrySealedError(route.name)
        self._routes[route.name] = route

    def seal(self) -> None:
        if not self._sealed:
            self._sealed = True
            self._snapshot = MappingProxyType(dict(self._routes))

    @property
    def sealed(self) -> bool:
        return self._sealed

    def snapshot(self) -> Mapping[str, Route]:
        """Read-only view of the registered routes in registration order."""
        if self._snapshot is not None:
            return self._snapshot
        return MappingProxyType(dict(self._routes))

    def get(self, name: str) -> Route | None:
        return self._routes.get(name)

    def names(self) -> list[str]:
        return list(self._routes)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def __iter__(self) -> Iterator[Route]:
        return iter(list(self._routes.values()))

    def __len__(self) -> int:
        return len(self._routes)
