from datetime import datetime, timedelta, timezone

import pytest

from conduit.contracts.ledger import ContractLedger, ContractStatus
from conduit.core.types import AgentRequest, MemoryGenerator
from conduit.core.pipeline import AgentResponse
from conduit.routes.catalog import default_routes
from conduit.routes.contract import ContractRoutes
from conduit.routes.conversation import ConversationRoute

from tests.conftest import FakeCompletion, make_input


NOW = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)
ADDRESS = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


def setup(completion, memory, ledger=None, now=NOW):
    ledger = ledger or ContractLedger()
    conversation = ConversationRoute(completion, memory)
    routes = ContractRoutes(
        completion, memory, ledger, conversation, clock=lambda: now
    )
    return routes, ledger


def response_for(agent, sink, **input_fields):
    request = AgentRequest(input=make_input(**input_fields), agent=agent)
    return request, AgentResponse(request, sink, [])


class TestCreate:

    @pytest.mark.asyncio
    async def test_creates_contract_when_details_are_valid(self, agent, sink, memory):
        completion = FakeCompletion(structured={"ContractDraft": [{
            "goal": "Run a marathon",
            "deadline": "2025-06-30",
            "returnAddress": ADDRESS,
        }]})
        routes, ledger = setup(completion, memory)
        request, response = response_for(agent, sink)

        await routes.create("ctx", request, response)

        contracts = await ledger.active_for_user("u1")
        assert len(contracts) == 1
        assert contracts[0].goal == "Run a marathon"
        assert contracts[0].id in sink.events[0][1]

        stored = await memory.query(user_id="u1")
        assert stored[0].generator == MemoryGenerator.LLM
        assert stored[0].text == sink.events[0][1]

    @pytest.mark.asyncio
    async def test_missing_fields_are_listed(self, agent, sink, memory):
        completion = FakeCompletion(structured={"ContractDraft": [{"goal": "Read 10 books"}]})
        routes, ledger = setup(completion, memory)
        request, response = response_for(agent, sink)

        await routes.create("ctx", request, response)

        reply = sink.events[0][1]
        assert "a deadline" in reply and "a return address" in reply
        assert await ledger.active_for_user("u1") == []

    @pytest.mark.asyncio
    async def test_invalid_address_rejected(self, agent, sink, memory):
        completion = FakeCompletion(structured={"ContractDraft": [{
            "goal": "x", "deadline": "2025-06-30", "returnAddress": "0xNOTVALID",
        }]})
        routes, _ = setup(completion, memory)
        request, response = response_for(agent, sink)

        await routes.create("ctx", request, response)

        assert "invalid" in sink.events[0][1]

    @pytest.mark.asyncio
    async def test_past_deadline_rejected(self, agent, sink, memory):
        completion = FakeCompletion(structured={"ContractDraft": [{
            "goal": "x", "deadline": "2024-01-01", "returnAddress": ADDRESS,
        }]})
        routes, _ = setup(completion, memory)
        request, response = response_for(agent, sink)

        await routes.create("ctx", request, response)

        assert sink.events == [("send", "The deadline must be in the future.")]

    @pytest.mark.asyncio
    async def test_abort_falls_back_to_conversation(self, agent, sink, memory):
        completion = FakeCompletion(
            text_replies=["Just chatting then."],
            structured={"ContractDraft": [{"abort": True}]},
        )
        routes, _ = setup(completion, memory)
        request, response = response_for(agent, sink)

        await routes.create("ctx", request, response)

        assert sink.events == [("send", "Just chatting then.")]


class TestVerifyAndCancel:

    @pytest.mark.asyncio
    async def test_verification_completes_active_contract(self, agent, sink, memory):
        ledger = ContractLedger()
        contract = await ledger.create("u1", "Run", NOW + timedelta(days=30), ADDRESS, now=NOW)
        completion = FakeCompletion(
            structured={"ContractVerification": [{"contractId": contract.id}]}
        )
        routes, _ = setup(completion, memory, ledger)
        request, response = response_for(agent, sink)

        await routes.verify("ctx", request, response)

        updated = await ledger.get_user_contract(contract.id, "u1")
        assert updated.status == ContractStatus.COMPLETED
        assert updated.completed_at is not None
        assert contract.id in completion.calls[0][1]

    @pytest.mark.asyncio
    async def test_verification_without_id_sends_guidance(self, agent, sink, memory):
        completion = FakeCompletion(structured={"ContractVerification": [{
            "message": "Please send a photo of your finisher medal.",
        }]})
        routes, _ = setup(completion, memory)
        request, response = response_for(agent, sink)

        await routes.verify("ctx", request, response)

        assert sink.events == [("send", "Please send a photo of your finisher medal.")]

    @pytest.mark.asyncio
    async def test_other_users_contract_is_not_found(self, agent, sink, memory):
        ledger = ContractLedger()
        contract = await ledger.create("someone-else", "Run", NOW + timedelta(days=3), ADDRESS, now=NOW)
        completion = FakeCompletion(structured={"ContractCancellation": [{"contractId": contract.id}]})
        routes, _ = setup(completion, memory, ledger)
        request, response = response_for(agent, sink)

        await routes.cancel("ctx", request, response)

        assert "couldn't find" in sink.events[0][1]
        assert (await ledger.get_user_contract(contract.id, "someone-else")).status == ContractStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_cancel_within_window(self, agent, sink, memory):
        ledger = ContractLedger()
        contract = await ledger.create("u1", "Run", NOW + timedelta(days=3), ADDRESS, now=NOW)
        completion = FakeCompletion(structured={"ContractCancellation": [{"contractId": contract.id}]})
        routes, _ = setup(completion, memory, ledger, now=NOW + timedelta(minutes=30))
        request, response = response_for(agent, sink)

        await routes.cancel("ctx", request, response)

        assert (await ledger.get_user_contract(contract.id, "u1")).status == ContractStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_after_window_refused(self, agent, sink, memory):
        ledger = ContractLedger()
        contract = await ledger.create("u1", "Run", NOW + timedelta(days=3), ADDRESS, now=NOW)
        completion = FakeCompletion(structured={"ContractCancellation": [{"contractId": contract.id}]})
        routes, _ = setup(completion, memory, ledger, now=NOW + timedelta(hours=3))
        request, response = response_for(agent, sink)

        await routes.cancel("ctx", request, response)

        assert "within 2 hours" in sink.events[0][1]
        assert (await ledger.get_user_contract(contract.id, "u1")).status == ContractStatus.ACTIVE


def test_default_routes_names(memory):
    routes = default_routes(FakeCompletion(), memory, ContractLedger())

    assert [r.name for r in routes] == [
        "conversation",
        "contract_create",
        "contract_formation_help",
        "contract_verification",
        "contract_cancel",
    ]


@pytest.mark.asyncio
async def test_ledger_persists_to_json(tmp_path):
    path = tmp_path / "contracts.json"
    ledger = ContractLedger(str(path))
    contract = await ledger.create("u1", "Run", NOW + timedelta(days=3), ADDRESS, now=NOW)
    await ledger.update_status(contract.id, ContractStatus.COMPLETED)

    reloaded = ContractLedger(str(path))
    restored = await reloaded.get_user_contract(contract.id, "u1")

    assert restored.status == ContractStatus.COMPLETED
    assert restored.deadline == contract.deadline
