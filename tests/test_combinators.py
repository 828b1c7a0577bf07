"""Tests for wren.routing.combinators: pipe, choose, warbler."""

from wren.context import UNMATCHED, Context, Denied, Matched, Next, Result, evaluate
from wren.http.headers import Headers
from wren.http.query import QueryParams
from wren.http.request import Request
from wren.responders import set_header, set_status, text
from wren.routing.combinators import choose, compose, pipe, warbler


def _ctx(method: str = "GET", path: str = "/") -> Context:
    return Context(Request(method=method, path=path, headers=Headers(), query=QueryParams(), cookies={}))


async def _fall_through(ctx: Context, next: Next) -> Result:
    return UNMATCHED


async def _deny(ctx: Context, next: Next) -> Result:
    return Denied(ctx.response.with_status(401).with_body("no"))


class TestPipe:
    async def test_runs_stages_in_order(self) -> None:
        seen: list[str] = []

        def record(name: str):
            async def stage(ctx: Context, next: Next) -> Result:
                seen.append(name)
                return await next(ctx)

            return stage

        result = await evaluate(pipe(record("a"), record("b"), record("c"), text("done")), _ctx())
        assert seen == ["a", "b", "c"]
        assert isinstance(result, Matched)
        assert result.response.text == "done"

    async def test_context_changes_flow_downstream(self) -> None:
        handler = pipe(set_status(201), set_header("X-Test", "1"), text("made"))
        result = await evaluate(handler, _ctx())
        assert isinstance(result, Matched)
        assert result.response.status == 201
        assert result.response.header("x-test") == "1"

    async def test_responder_short_circuits(self) -> None:
        reached = False

        async def after(ctx: Context, next: Next) -> Result:
            nonlocal reached
            reached = True
            return await next(ctx)

        result = await evaluate(pipe(text("early"), after), _ctx())
        assert not reached
        assert isinstance(result, Matched)
        assert result.response.text == "early"

    async def test_unmatched_propagates(self) -> None:
        result = await evaluate(pipe(_fall_through, text("never")), _ctx())
        assert result is UNMATCHED

    async def test_empty_pipe_passes_through(self) -> None:
        result = await evaluate(pipe(), _ctx())
        assert isinstance(result, Matched)
        assert result.response.status == 200

    async def test_compose_is_pipe_of_two(self) -> None:
        result = await evaluate(compose(set_status(418), text("teapot")), _ctx())
        assert isinstance(result, Matched)
        assert result.response.status == 418

    async def test_original_context_is_untouched(self) -> None:
        ctx = _ctx()
        await evaluate(pipe(set_status(500), text("x")), ctx)
        assert ctx.response.status == 200


class TestChoose:
    async def test_first_non_unmatched_wins(self) -> None:
        handler = choose([_fall_through, text("second"), text("third")])
        result = await evaluate(handler, _ctx())
        assert isinstance(result, Matched)
        assert result.response.text == "second"

    async def test_overlapping_pipelines_first_wins(self) -> None:
        handler = choose([text("first"), text("second")])
        result = await evaluate(handler, _ctx())
        assert isinstance(result, Matched)
        assert result.response.text == "first"

    async def test_denied_stops_search(self) -> None:
        handler = choose([_deny, text("unreachable")])
        result = await evaluate(handler, _ctx())
        assert isinstance(result, Denied)
        assert result.response.status == 401

    async def test_all_unmatched(self) -> None:
        result = await evaluate(choose([_fall_through, _fall_through]), _ctx())
        assert result is UNMATCHED

    async def test_empty_choose_is_unmatched(self) -> None:
        assert await evaluate(choose([]), _ctx()) is UNMATCHED

    async def test_later_list_mutation_is_ignored(self) -> None:
        pipelines = [text("original")]
        handler = choose(pipelines)
        pipelines.insert(0, text("injected"))
        result = await evaluate(handler, _ctx())
        assert isinstance(result, Matched)
        assert result.response.text == "original"

    async def test_alternatives_do_not_see_each_others_changes(self) -> None:
        handler = choose([pipe(set_status(500), _fall_through), text("clean")])
        result = await evaluate(handler, _ctx())
        assert isinstance(result, Matched)
        assert result.response.status == 200


class TestWarbler:
    async def test_factory_runs_per_request(self) -> None:
        calls = 0

        def factory(ctx: Context):
            nonlocal calls
            calls += 1
            return text(str(calls))

        handler = warbler(factory)
        assert calls == 0
        first = await evaluate(handler, _ctx())
        second = await evaluate(handler, _ctx())
        assert isinstance(first, Matched) and isinstance(second, Matched)
        assert (first.response.text, second.response.text) == ("1", "2")

    async def test_async_factory(self) -> None:
        async def factory(ctx: Context):
            return text(ctx.request.path)

        result = await evaluate(warbler(factory), _ctx(path="/here"))
        assert isinstance(result, Matched)
        assert result.response.text == "/here"
