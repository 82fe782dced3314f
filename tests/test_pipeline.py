import pytest

from conduit.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    ResponseFinalizedError,
    StageError,
)
from conduit.core.error_handlers import reply_with_apology
from conduit.core.pipeline import AgentFramework

from tests.conftest import make_input


def recorder(trace, name, advance_after=True):
    async def stage(request, response, advance):
        trace.append(name)
        if advance_after:
            await advance()

    stage.__name__ = name
    return stage


class TestStageOrdering:

    @pytest.mark.asyncio
    async def test_stages_run_in_registration_order(self, agent, sink):
        trace = []
        framework = AgentFramework()
        framework.use(recorder(trace, "a")).use(recorder(trace, "b"))

        async def reply(request, response, advance):
            trace.append("c")
            await response.send("done")

        framework.use(reply)
        await framework.process(make_input(), agent, sink)

        assert trace == ["a", "b", "c"]
        assert sink.events == [("send", "done")]

    @pytest.mark.asyncio
    async def test_stage_that_responds_without_advancing_stops_chain(self, agent, sink):
        trace = []

        async def short_circuit(request, response, advance):
            await response.send("early")

        framework = AgentFramework()
        framework.use(short_circuit).use(recorder(trace, "never"))
        response = await framework.process(make_input(), agent, sink)

        assert trace == []
        assert response.content == "early"

    @pytest.mark.asyncio
    async def test_advance_twice_runs_next_stage_once(self, agent, sink):
        trace = []

        async def greedy(request, response, advance):
            await advance()
            await advance()

        framework = AgentFramework()
        framework.use(greedy).use(recorder(trace, "next", advance_after=False))
        await framework.process(make_input(), agent, sink)

        assert trace == ["next"]

    @pytest.mark.asyncio
    async def test_concurrent_requests_keep_separate_state(self, agent):
        import asyncio

        from tests.conftest import RecordingSink

        async def echo(request, response, advance):
            await asyncio.sleep(0)
            await response.send(request.input.text)

        framework = AgentFramework()
        framework.use(echo)
        sinks = [RecordingSink() for _ in range(5)]
        await asyncio.gather(*(
            framework.process(make_input(text=f"m{i}"), agent, sinks[i])
            for i in range(5)
        ))

        assert [s.events for s in sinks] == [[("send", f"m{i}")] for i in range(5)]


class TestErrorFunnel:

    @pytest.mark.asyncio
    async def test_stage_exception_reaches_every_handler(self, agent, sink):
        seen = []

        async def boom(request, response, advance):
            raise RuntimeError("kaput")

        async def first(error, request, response):
            seen.append(("first", error))
            raise ValueError("handler bug")

        async def second(error, request, response):
            seen.append(("second", error))

        framework = AgentFramework()
        framework.use(boom).on_error(first).on_error(second)
        response = await framework.process(make_input(), agent, sink)

        assert [name for name, _ in seen] == ["first", "second"]
        error = seen[0][1]
        assert isinstance(error, StageError)
        assert error.stage == "boom"
        assert isinstance(error.cause, RuntimeError)
        assert response.failed
        assert sink.events == [("error", GENERIC_FAILURE_MESSAGE)]

    @pytest.mark.asyncio
    async def test_failure_message_is_delivered_once(self, agent, sink):
        async def boom(request, response, advance):
            raise RuntimeError("secret detail")

        framework = AgentFramework()
        framework.use(boom)
        framework.on_error(reply_with_apology("first apology"))
        framework.on_error(reply_with_apology("second apology"))
        await framework.process(make_input(), agent, sink)

        assert sink.events == [("error", "first apology")]

    @pytest.mark.asyncio
    async def test_raw_error_text_not_sent_to_user(self, agent, sink):
        async def boom(request, response, advance):
            raise RuntimeError("database password is hunter2")

        framework = AgentFramework()
        framework.use(boom)
        await framework.process(make_input(), agent, sink)

        assert "hunter2" not in sink.events[0][1]

    @pytest.mark.asyncio
    async def test_second_send_raises_and_is_not_delivered(self, agent, sink):
        async def double(request, response, advance):
            await response.send("one")
            await response.send("two")

        framework = AgentFramework()
        framework.use(double)
        await framework.process(make_input(), agent, sink)

        assert sink.events == [("send", "one")]

    @pytest.mark.asyncio
    async def test_second_send_error_type(self, agent, sink):
        captured = []

        async def double(request, response, advance):
            await response.send("one")
            try:
                await response.send("two")
            except ResponseFinalizedError as exc:
                captured.append(exc)

        framework = AgentFramework()
        framework.use(double)
        await framework.process(make_input(), agent, sink)

        assert len(captured) == 1

    @pytest.mark.asyncio
    async def test_stalled_chain_is_not_finalized(self, agent, sink):
        async def silent(request, response, advance):
            return None

        framework = AgentFramework()
        framework.use(silent)
        response = await framework.process(make_input(), agent, sink)

        assert not response.finalized
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_process_seals_route_registry(self, agent, sink):
        async def reply(request, response, advance):
            await response.send("x")

        framework = AgentFramework()
        framework.use(reply)
        await framework.process(make_input(), agent, sink)

        assert agent.routes.sealed
