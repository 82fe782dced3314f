"""Goal-contract lifecycle routes.

Routes:
    - `contract_create`: extract goal, deadline and return address; create the
      contract once all three are present and valid.
    - `contract_formation_help`: guide the user towards the missing details.
    - `contract_verification`: mark an active contract completed when the user
      shows proof of completion.
    - `contract_cancel`: cancel an active contract within the cancel window.

Abort handling:
    Every extraction schema has an `abort` flag. When the model reports that
    the user is not actually doing what the route assumes, the handler hands
    the request to the conversation route instead.

Replies:
    Every reply is stored as an `llm` memory before it is sent, so the next
    request sees it in the conversation history.

Out of scope:
    Deposit addresses, key material and fund transfers belong to the escrow
    subsystem; the replies here only describe the lifecycle change.
"""

import logging
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field

from conduit.contracts.ledger import (
    Contract,
    ContractStatus,
    parse_datetime,
    validate_deadline,
    validate_return_address,
)
from conduit.core.types import Route
from conduit.llm.service import LLMSize
from conduit.memory.store import remember_reply
from conduit.prompting.prompt_builder import (
    build_contract_cancel_prompt,
    build_contract_create_prompt,
    build_contract_formation_help_prompt,
    build_contract_verification_prompt,
)


logger = logging.getLogger(__name__)

DEFAULT_CANCEL_WINDOW = timedelta(hours=2)


class ContractDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    goal: str | None = None
    deadline: str | None = None
    return_address: str | None = Field(None, alias="returnAddress")
    abort: bool | None = None


class ContractVerification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_id: str | None = Field(None, alias="contractId")
    message: str | None = None
    abort: bool | None = None


class ContractCancellation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_id: str | None = Field(None, alias="contractId")
    abort: bool | None = None


def describe_contracts(contracts: list[Contract]) -> str:
    if not contracts:
        return "None"
    return "\n".join(
        f"- contractId={c.id}: {c.goal} (deadline {c.deadline.date().isoformat()}, "
        f"created {c.created_at.isoformat()})"
        for c in contracts
    )


class ContractRoutes:
    """Handlers for the contract lifecycle, sharing one ledger and memory store.

    Args:
        completion: Completion service for extraction and guidance replies.
        memory: Memory store replies are written to.
        ledger: `ContractLedger`.
        conversation: Handler used when extraction aborts.
        cancel_window: How long after creation a contract can be cancelled.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        completion,
        memory,
        ledger,
        conversation,
        cancel_window: timedelta = DEFAULT_CANCEL_WINDOW,
        clock=None,
    ):
        self.completion = completion
        self.memory = memory
        self.ledger = ledger
        self.conversation = conversation
        self.cancel_window = cancel_window
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _reply(self, request, response, text: str) -> None:
        await remember_reply(
            self.memory,
            request.input,
            text,
            type="contract",
            agent_id=request.agent.agent_id,
        )
        await response.send(text)

    # -----------------------------------------------------
    # CREATE
    # -----------------------------------------------------

    async def create(self, context, request, response) -> None:
        draft = await self.completion.complete_structured(
            build_contract_create_prompt(context), ContractDraft, size=LLMSize.SMALL
        )

        if draft.abort:
            return await self.conversation(context, request, response)

        missing = []
        if not draft.goal:
            missing.append("a specific goal")
        if not draft.deadline:
            missing.append("a deadline")
        if not draft.return_address:
            missing.append("a return address")

        if missing:
            return await self._reply(
                request,
                response,
                f"To create a contract, I'll need: {', '.join(missing)}. Please provide these details.",
            )

        if not validate_return_address(draft.return_address.strip()):
            return await self._reply(
                request,
                response,
                "The provided return address appears to be invalid. Please check and provide a valid address.",
            )

        try:
            deadline = parse_datetime(draft.deadline)
        except ValueError:
            return await self._reply(
                request,
                response,
                "I couldn't understand that deadline. Please give it as a date, for example 2025-06-30.",
            )

        now = self._clock()
        if not validate_deadline(deadline, now):
            return await self._reply(request, response, "The deadline must be in the future.")

        contract = await self.ledger.create(
            request.input.user_id,
            draft.goal.strip(),
            deadline,
            draft.return_address.strip(),
            now=now,
        )
        logger.info("Contract %s created for user=%s", contract.id, contract.user_id)

        await self._reply(
            request,
            response,
            f"Contract created successfully! Contract ID: {contract.id}. "
            f"Goal: {contract.goal}. Deadline: {contract.deadline.date().isoformat()}. "
            "I'll help you stay accountable to your goal.",
        )

    # -----------------------------------------------------
    # FORMATION HELP
    # -----------------------------------------------------

    async def formation_help(self, context, request, response) -> None:
        reply = await self.completion.complete(build_contract_formation_help_prompt(context))
        await self._reply(request, response, reply)

    # -----------------------------------------------------
    # VERIFICATION
    # -----------------------------------------------------

    async def verify(self, context, request, response) -> None:
        active = await self.ledger.active_for_user(request.input.user_id)
        analysis = await self.completion.complete_structured(
            build_contract_verification_prompt(context, describe_contracts(active)),
            ContractVerification,
            size=LLMSize.LARGE,
            image_urls=list(request.input.image_urls) or None,
        )

        if analysis.abort:
            return await self.conversation(context, request, response)

        if not analysis.contract_id:
            return await self._reply(
                request,
                response,
                analysis.message or "Please provide proof that you have completed your goal.",
            )

        contract = await self.ledger.get_user_contract(analysis.contract_id, request.input.user_id)
        if contract is None:
            return await self._reply(
                request, response, "I couldn't find that specific contract. Please try again."
            )

        if contract.status != ContractStatus.ACTIVE:
            return await self._reply(
                request,
                response,
                f"That contract is already {contract.status.value}.",
            )

        await self.ledger.update_status(contract.id, ContractStatus.COMPLETED)
        logger.info("Contract %s completed by user=%s", contract.id, contract.user_id)

        await self._reply(
            request,
            response,
            f"Contract {contract.id} completed successfully. Well done on reaching your goal!",
        )

    # -----------------------------------------------------
    # CANCEL
    # -----------------------------------------------------

    async def cancel(self, context, request, response) -> None:
        active = await self.ledger.active_for_user(request.input.user_id)
        analysis = await self.completion.complete_structured(
            build_contract_cancel_prompt(context, describe_contracts(active)),
            ContractCancellation,
            size=LLMSize.SMALL,
        )

        if analysis.abort:
            return await self.conversation(context, request, response)

        contract = None
        if analysis.contract_id:
            contract = await self.ledger.get_user_contract(
                analysis.contract_id, request.input.user_id
            )

        if contract is None:
            return await self._reply(
                request,
                response,
                "I couldn't find that specific contract. Please check the contract ID and try again.",
            )

        if contract.status != ContractStatus.ACTIVE:
            return await self._reply(
                request,
                response,
                f"That contract is already {contract.status.value}.",
            )

        if contract.created_at < self._clock() - self.cancel_window:
            hours = self.cancel_window.total_seconds() / 3600
            return await self._reply(
                request,
                response,
                f"You can only cancel a contract within {hours:g} hours of creating it.",
            )

        await self.ledger.update_status(contract.id, ContractStatus.CANCELLED)
        logger.info("Contract %s cancelled by user=%s", contract.id, contract.user_id)

        await self._reply(request, response, f"Contract {contract.id} cancelled successfully.")

    def routes(self) -> list[Route]:
        return [
            Route(
                name="contract_create",
                description=(
                    "Call if the user wants to create an accountability contract AND has "
                    "provided a goal, deadline, and return address."
                ),
                handler=self.create,
            ),
            Route(
                name="contract_formation_help",
                description=(
                    "Call if the user seems to want to form an accountability contract, but "
                    "has not provided all of the following: a goal, deadline, and return address."
                ),
                handler=self.formation_help,
            ),
            Route(
                name="contract_verification",
                description="Call if the user wants to verify they have fulfilled a contract.",
                handler=self.verify,
            ),
            Route(
                name="contract_cancel",
                description=(
                    "Call if the user made a contract in the last couple of hours and wants to cancel it."
                ),
                handler=self.cancel,
            ),
        ]
