"""Prompt assembly helpers for the router and the route handlers.

This module only builds prompt strings from an already assembled context.
Route selection, validation, and model invocation happen elsewhere.

Design constraints:
    - Deterministic construction for identical inputs.
    - The assembled context always comes first, instructions last, wrapped in
      a `<SYSTEM>` block so the model can tell them apart from user text.

Prompt safety model:
    - Safety is instruction-led, not parser-enforced.
    - Context and user text are interpolated as raw strings.
"""

from collections.abc import Iterable

from conduit.core.types import Route


def _with_system(context: str, instruction: str) -> str:
    return f"{context}\n\n<SYSTEM>\n{instruction.strip()}\n</SYSTEM>"


# =========================================================
# ROUTING PROMPT
# =========================================================
# Prompt component order:
#   1) Assembled context (history, persona, current input)
#   2) Agent system prompt
#   3) Available routes as `"name": description` lines
#   4) Output contract (selectedRoute / confidence / reasoning)

def format_route_descriptions(routes: Iterable[Route]) -> str:
    return "\n".join(f'"{route.name}": {route.description}' for route in routes)


def build_routing_prompt(system_prompt: str, routes: Iterable[Route], context: str) -> str:
    """Build the classification prompt for the intent router.

    Args:
        system_prompt: The agent's core behavioral instructions.
        routes: Registry snapshot, rendered in iteration order.
        context: Output of `build_context` for the current request.

    Returns:
        Prompt string asking for a `RouteDecision` JSON object.
    """
    instruction = (
        "You are functioning as a request router for an AI agent with the following system prompt:\n\n"
        f"{system_prompt.strip()}\n\n"
        "Your task is to analyze incoming messages and route them to the most appropriate "
        "handler based on the available routes below. Consider the agent's purpose and "
        "capabilities when making this decision.\n\n"
        "Available Routes:\n"
        f"{format_route_descriptions(routes)}\n\n"
        "Based on the agent's system description and the available routes, select the most "
        "appropriate route to handle this interaction.\n\n"
        "Respond with a JSON object containing:\n"
        "- selectedRoute: The name of the selected route\n"
        "- confidence: A number between 0 and 1 indicating confidence in the selection\n"
        "- reasoning: A brief explanation of why this route was selected"
    )
    return f"<CONTEXT>\n{context}\n</CONTEXT>\n\n<SYSTEM>\n{instruction}\n</SYSTEM>"


# =========================================================
# HANDLER PROMPTS
# =========================================================

def build_conversation_prompt(context: str) -> str:
    return _with_system(
        context,
        "Reply to the current user input in character, taking the previous "
        "conversation into account. Reply with the message text only.",
    )


def build_contract_create_prompt(context: str) -> str:
    return _with_system(
        context,
        "The user is trying to create an accountability contract. Extract the goal, "
        "the deadline (as an ISO 8601 date or datetime) and the return address they "
        "provided. Leave out anything they did not provide. If they do not seem to "
        "want to create a contract, return true for the abort field.",
    )


def build_contract_formation_help_prompt(context: str) -> str:
    return _with_system(
        context,
        "The user is trying to create an accountability contract, but has not provided "
        "all of the following: a goal, a deadline, and a return address. Guide them "
        "along and ask for the missing information. If it is not clear they want to "
        "create a contract, ask them for clarification.",
    )


def build_contract_verification_prompt(context: str, active_contracts: str) -> str:
    return _with_system(
        context,
        "The user claims to have completed their contract. Their active contracts are:\n"
        f"{active_contracts}\n\n"
        "See if they provided proof of the completion. If they did, return the "
        "contractId of the contract they completed. Give them the benefit of the doubt "
        "and believe them unless they provide no proof at all. If the proof is "
        "insufficient, do not return a contractId and include a message asking them "
        "to provide more proof. If the user is not trying to complete a contract, "
        "return true for the abort field.",
    )


def build_contract_cancel_prompt(context: str, active_contracts: str) -> str:
    return _with_system(
        context,
        "The user may be trying to cancel a contract. Their active contracts are:\n"
        f"{active_contracts}\n\n"
        "If they are trying to cancel one, return its contractId. If they are not "
        "trying to cancel a contract, return true for the abort field.",
    )
