"""LLM-driven intent router: classify the request, then dispatch to one route.

Intent classification logic:
    1. Build a routing prompt from the agent system prompt, the
       `"name": description` list of every registered route, and the assembled
       context.
    2. Ask the completion service for a structured `RouteDecision`
       (`selectedRoute`, `confidence`, `reasoning`).
    3. Validate the decision against the live registry snapshot. An unknown
       route name fails the request; there is no default route.
    4. Below the confidence threshold, log a warning and still dispatch.
    5. Invoke the handler with `(context, request, response)`, then advance the
       pipeline so trailing stages still run.

Low-confidence policy:
    The router favours availability over precision: it always runs the chosen
    handler. The threshold (default 0.7) controls logging only.

Router state (recorded on `request.route_state`):
    PENDING_CLASSIFICATION -> ROUTED -> HANDLED | FAILED. No state is retried.

Failure handling:
    - Classification call or malformed structured output -> `RoutingError`.
    - Unknown route name -> `UnmatchedRouteError`; no handler runs.
    - Handler exception -> `RouteHandlerError` carrying the route name.
    All are raised to the pipeline engine, which calls `response.error`.

Concurrency:
    The route table is read through an immutable snapshot, so any number of
    requests can be routed concurrently. The router holds no per-request state.
"""

import logging

from conduit.core.errors import (
    RouteHandlerError,
    RoutingError,
    UnmatchedRouteError,
)
from conduit.core.types import RouteDecision, RouteState
from conduit.llm.service import LLMSize
from conduit.prompting.prompt_builder import build_routing_prompt


logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.7


class IntentRouter:
    """Pipeline stage that selects and runs one registered route.

    Args:
        completion: Completion service used for classification.
        confidence_threshold: Scores strictly below this value are logged as
            low-confidence decisions.
    """

    stage_name = "router"

    def __init__(self, completion, confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")
        self.completion = completion
        self.confidence_threshold = confidence_threshold

    async def classify(self, request) -> RouteDecision:
        routes = request.agent.routes.snapshot()
        if not routes:
            raise RoutingError("No routes registered for agent " + request.agent.agent_id)

        prompt = build_routing_prompt(
            request.agent.system_prompt,
            routes.values(),
            request.context or "",
        )

        try:
            decision = await self.completion.complete_structured(
                prompt, RouteDecision, size=LLMSize.LARGE
            )
        except Exception as exc:
            raise RoutingError(f"Router error: {exc}") from exc

        if not isinstance(decision, RouteDecision):
            raise RoutingError(f"Router error: unexpected classification result {decision!r}")
        return decision

    async def __call__(self, request, response, advance) -> None:
        request.route_state = RouteState.PENDING_CLASSIFICATION

        try:
            decision = await self.classify(request)
        except RoutingError:
            request.route_state = RouteState.FAILED
            raise

        request.route_decision = decision
        routes = request.agent.routes.snapshot()
        route = routes.get(decision.selected_route)
        if route is None:
            request.route_state = RouteState.FAILED
            raise UnmatchedRouteError(decision.selected_route, list(routes))

        request.route_state = RouteState.ROUTED
        logger.info(
            "ROUTE DECISION: %s (confidence=%.2f, room=%s)",
            route.name,
            decision.confidence,
            request.input.room_id,
        )

        if decision.confidence < self.confidence_threshold:
            logger.warning(
                "Low confidence routing decision (%.2f) for route: %s. Reasoning: %s",
                decision.confidence,
                route.name,
                decision.reasoning,
            )

        try:
            await route.handler(request.context or "", request, response)
        except Exception as exc:
            request.route_state = RouteState.FAILED
            raise RouteHandlerError(route.name, exc) from exc

        request.route_state = RouteState.HANDLED
        await advance()
