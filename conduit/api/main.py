"""
Server entrypoint.

Architectural role:
- Assemble the runtime graph: settings, memory store, contract ledger,
  completion service, agent with its routes, and the pipeline.
- Serve the HTTP adapter with uvicorn.

Assembly order (`build_framework` / `build_runtime`):
1. Standard stages:
   validate_input -> load_memories -> wrap_context -> create_memory_from_input -> router
2. Error handlers: `log_error`, then `reply_with_apology()`.

Side effects:
- Loads `.env` via the settings module.
- Configures root logging from `LOG_LEVEL`.
"""

import logging

import uvicorn

from conduit.agent.base_agent import BaseAgent
from conduit.agent.defaults import STERN
from conduit.config import Settings, load_settings
from conduit.contracts.ledger import ContractLedger
from conduit.core.error_handlers import log_error, reply_with_apology
from conduit.core.pipeline import AgentFramework
from conduit.llm.service import LLMService
from conduit.memory.store import build_memory_store
from conduit.routes.catalog import default_routes
from conduit.stages import standard_stages


logger = logging.getLogger(__name__)


def build_framework(memory, completion, settings: Settings) -> AgentFramework:
    framework = AgentFramework()
    for stage in standard_stages(
        memory,
        completion,
        memory_limit=settings.memory_limit,
        memory_scope=settings.memory_scope,
        confidence_threshold=settings.router_confidence_threshold,
    ):
        framework.use(stage)

    framework.on_error(log_error)
    framework.on_error(reply_with_apology())
    return framework


def build_runtime(settings: Settings, completion=None, character=STERN):
    """Wire every collaborator and return `(framework, agents)`."""
    memory = build_memory_store(settings)
    ledger = ContractLedger(settings.contracts_path or None)
    completion = completion or LLMService()

    agent = BaseAgent(
        character,
        default_routes(
            completion,
            memory,
            ledger,
            cancel_window_hours=settings.contract_cancel_window_hours,
        ),
    )
    framework = build_framework(memory, completion, settings)
    return framework, [agent]


def create_default_app(settings: Settings | None = None):
    from conduit.api.http_api import create_app

    settings = settings or load_settings()
    framework, agents = build_runtime(settings)
    return create_app(framework, agents, settings)


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_default_app(settings)
    logger.info("Serving on http://%s:%s", settings.host, settings.port)

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
