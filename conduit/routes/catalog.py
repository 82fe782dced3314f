"""Default route set for a goal-contract mentor agent."""

from datetime import timedelta

from conduit.core.types import Route
from conduit.routes.contract import ContractRoutes
from conduit.routes.conversation import ConversationRoute


def default_routes(completion, memory, ledger, cancel_window_hours: float = 2) -> list[Route]:
    conversation = ConversationRoute(completion, memory)
    contracts = ContractRoutes(
        completion,
        memory,
        ledger,
        conversation,
        cancel_window=timedelta(hours=cancel_window_hours),
    )
    return [conversation.route()] + contracts.routes()
