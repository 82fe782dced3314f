import pytest

from conduit.agent.registry import RouteRegistry
from conduit.core.errors import DuplicateRouteError, RegistrySealedError
from conduit.core.types import Route


async def noop(context, request, response):
    return None


def test_duplicate_name_rejected_without_mutation():
    registry = RouteRegistry([Route("conversation", "chat", noop)])

    with pytest.raises(DuplicateRouteError):
        registry.add(Route("conversation", "other", noop))

    assert len(registry) == 1
    assert registry.get("conversation").description == "chat"


def test_registration_order_is_kept():
    registry = RouteRegistry()
    for name in ("b", "a", "c"):
        registry.add(Route(name, name, noop))

    assert registry.names() == ["b", "a", "c"]
    assert list(registry.snapshot()) == ["b", "a", "c"]


def test_sealed_registry_rejects_new_routes():
    registry = RouteRegistry([Route("conversation", "chat", noop)])
    registry.seal()

    with pytest.raises(RegistrySealedError):
        registry.add(Route("refund", "money back", noop))
    assert "refund" not in registry


def test_snapshot_is_read_only():
    registry = RouteRegistry([Route("conversation", "chat", noop)])
    registry.seal()

    snapshot = registry.snapshot()
    with pytest.raises(TypeError):
        snapshot["x"] = Route("x", "x", noop)


def test_agents_have_independent_registries():
    from conduit.agent.base_agent import BaseAgent
    from conduit.agent.defaults import STERN

    first = BaseAgent(STERN)
    second = BaseAgent(STERN)
    first.add_route(Route("conversation", "chat", noop))

    assert "conversation" in first.routes
    assert "conversation" not in second.routes
