"""
LoadSession memoization, state tracking and scheduling.
"""

import asyncio

import pytest

from strata import ComponentStatus, LoaderConfig, SetupFailure, UndefinedComponent, make_loader
from strata.component import ComponentDef
from strata.session import LoadSession
from strata.testing import MockComponent


class TestSessionMemoization:

    @pytest.mark.asyncio
    async def test_shared_table_across_targets(self):
        config_setup = MockComponent({"port": 1})
        loader = make_loader({
            "config": {"setup": config_setup},
            "server": {"requires": ["config"], "setup": lambda ctx: ("server", ctx.config)},
        })
        session = loader.session()

        server = await session.load("server")
        config = await session.load("config")

        assert server[1] is config
        assert config_setup.call_count == 1

    @pytest.mark.asyncio
    async def test_identical_value_via_two_dependents(self):
        loader = make_loader({
            "pool": {"setup": lambda ctx: object()},
            "users": {"requires": ["pool"], "setup": lambda ctx: ctx.pool},
            "orders": {"requires": ["pool"], "setup": lambda ctx: ctx.pool},
            "api": {"requires": ["users", "orders"], "setup": lambda ctx: (ctx.users, ctx.orders)},
        })
        users, orders = await loader("api")
        assert users is orders

    @pytest.mark.asyncio
    async def test_concurrent_loads_converge(self):
        setup = MockComponent("slow", delay=0.01)
        session = make_loader({"slow": {"setup": setup}}).session()

        first, second = await asyncio.gather(session.load("slow"), session.load("slow"))

        assert first == second == "slow"
        assert setup.call_count == 1

    @pytest.mark.asyncio
    async def test_unknown_name(self):
        session = make_loader({}).session()
        with pytest.raises(UndefinedComponent):
            await session.load("nope")

    @pytest.mark.asyncio
    async def test_bare_session_over_directory(self):
        directory = {
            "a": ComponentDef(name="a", setup=lambda ctx: 1),
            "b": ComponentDef(name="b", setup=lambda ctx: ctx.a + ctx.v, requires=("a", "v")),
        }
        session = LoadSession(directory, {"v": 10})
        assert await session.load("b") == 11


class TestComponentStates:

    @pytest.mark.asyncio
    async def test_state_transitions(self):
        gate = asyncio.Event()

        async def setup_slow(ctx):
            await gate.wait()
            return "done"

        session = make_loader({"slow": {"setup": setup_slow}}).session()
        assert session.state("slow") is ComponentStatus.UNRESOLVED

        pending = asyncio.ensure_future(session.load("slow"))
        await asyncio.sleep(0)
        assert session.state("slow") is ComponentStatus.PENDING

        gate.set()
        assert await pending == "done"
        assert session.state("slow") is ComponentStatus.SETTLED
        assert session.entry("slow").value == "done"

    @pytest.mark.asyncio
    async def test_bound_values_are_settled(self):
        loader = make_loader({"app": {"requires": ["config"], "setup": lambda ctx: 1}}, virtual=["config"])
        session = loader.session({"config": "cfg"})
        assert "config" in session
        assert session.state("config") is ComponentStatus.SETTLED
        assert session.entry("config").value == "cfg"
        assert "app" not in session

    @pytest.mark.asyncio
    async def test_failed_state_propagates(self):
        loader = make_loader({
            "D": {"setup": MockComponent(error=ValueError("boom"))},
            "B": {"requires": ["D"], "setup": lambda ctx: "b"},
            "E": {"setup": lambda ctx: "e"},
        })
        session = loader.session()

        with pytest.raises(SetupFailure) as exc_info:
            await session.load("B")

        assert session.state("D") is ComponentStatus.FAILED
        assert session.state("B") is ComponentStatus.FAILED
        assert session.entry("B").error is exc_info.value
        assert await session.load("E") == "e"
        assert session.state("E") is ComponentStatus.SETTLED


class TestScheduling:

    @pytest.mark.asyncio
    async def test_siblings_progress_concurrently(self):
        ready = asyncio.Event()

        async def waiter(ctx):
            await ready.wait()
            return "waited"

        def signaller(ctx):
            ready.set()
            return "signalled"

        # Sequential resolution would block forever on the first sibling
        load = make_loader({
            "first": {"setup": waiter},
            "second": {"setup": signaller},
            "both": {"requires": ["first", "second"], "setup": lambda ctx: dict(ctx)},
        })
        result = await asyncio.wait_for(load("both"), timeout=1)
        assert result == {"first": "waited", "second": "signalled"}

    @pytest.mark.asyncio
    async def test_sequential_mode_follows_declared_order(self):
        started = []

        def record(name):
            async def setup(ctx):
                started.append(name)
                await asyncio.sleep(0)
                return name
            return setup

        load = make_loader(
            {
                "x": {"setup": record("x")},
                "y": {"setup": record("y")},
                "z": {"setup": record("z")},
                "top": {"requires": ["z", "x", "y"], "setup": lambda ctx: list(ctx.values())},
            },
            config=LoaderConfig(concurrent=False),
        )
        assert await load("top") == ["z", "x", "y"]
        assert started == ["z", "x", "y"]

    @pytest.mark.asyncio
    async def test_setup_starts_after_requirements_settle(self):
        events = []

        async def dependency(ctx):
            events.append("dep:start")
            await asyncio.sleep(0.01)
            events.append("dep:end")
            return 1

        def dependent(ctx):
            events.append("dependent")
            return ctx.dep

        load = make_loader({
            "dep": {"setup": dependency},
            "top": {"requires": ["dep"], "setup": dependent},
        })
        assert await load("top") == 1
        assert events == ["dep:start", "dep:end", "dependent"]

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_shared_build_running(self):
        slow = MockComponent("slow", delay=0.05)
        session = make_loader({"slow": {"setup": slow}}).session()

        impatient = asyncio.ensure_future(session.load("slow"))
        patient = asyncio.ensure_future(session.load("slow"))
        await asyncio.sleep(0)
        impatient.cancel()

        assert await patient == "slow"
        assert impatient.cancelled()
        assert session.state("slow") is ComponentStatus.SETTLED
        assert slow.call_count == 1

    @pytest.mark.asyncio
    async def test_timed_out_dependent_does_not_abort_requirement(self):
        slow = MockComponent("slow", delay=0.05)
        top = MockComponent("top")
        session = make_loader({
            "slow": {"setup": slow},
            "top": {"requires": ["slow"], "setup": top},
        }).session()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(session.load("top"), timeout=0.01)

        assert await session.load("slow") == "slow"
        assert session.state("slow") is ComponentStatus.SETTLED
        assert await session.load("top") == "top"
        assert slow.call_count == 1
        assert top.call_count == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_in_sequential_mode(self):
        slow = MockComponent("slow", delay=0.05)
        session = make_loader(
            {
                "slow": {"setup": slow},
                "top": {"requires": ["slow"], "setup": lambda ctx: ctx.slow},
            },
            config=LoaderConfig(concurrent=False),
        ).session()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(session.load("top"), timeout=0.01)

        assert await session.load("top") == "slow"
        assert slow.call_count == 1
