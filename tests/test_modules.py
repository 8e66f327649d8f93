"""Tests for the module runtime."""

import asyncio
from unittest.mock import MagicMock

import pytest

from bedrock_portal.modules import (
    DuplicateModuleError,
    InvalidModuleError,
    Module,
    ModuleContext,
    ModuleError,
    ModuleMeta,
    ModuleRegistry,
    discover_modules,
    load_modules,
)
from bedrock_portal.modules.auto_friend_add import AutoFriendAdd


class Ticker(Module):
    meta = ModuleMeta(name="ticker", description="Counts iterations")
    defaults = {"interval": 0.01}

    def __init__(self):
        super().__init__()
        self.ticks = 0

    async def run(self, portal, context):
        async for _ in self.every(self.options["interval"]):
            self.ticks += 1


class Crasher(Module):
    meta = ModuleMeta(name="crasher", description="Fails immediately")

    async def run(self, portal, context):
        raise RuntimeError("boom")


class NoMeta(Module):
    async def run(self, portal, context):
        pass


def context():
    return ModuleContext(rest=MagicMock(), rta=MagicMock())


class TestModuleMeta:
    """Test ModuleMeta validation."""

    def test_requires_name(self):
        with pytest.raises(ValueError, match="name"):
            ModuleMeta(name="", description="x")

    def test_requires_description(self):
        with pytest.raises(ValueError, match="description"):
            ModuleMeta(name="x", description="")


class TestModuleRegistry:
    """Test registration."""

    def test_register_class(self):
        registry = ModuleRegistry()
        module = registry.register(Ticker)
        assert isinstance(module, Ticker)
        assert "ticker" in registry
        assert len(registry) == 1
        assert registry.get("ticker") is module

    def test_options_merge_over_defaults(self):
        registry = ModuleRegistry()
        module = registry.register(AutoFriendAdd, {"check_interval": 60})
        assert module.options["check_interval"] == 60
        assert module.options["add_interval"] == 2

    def test_duplicate_name(self):
        registry = ModuleRegistry()
        registry.register(Ticker)
        with pytest.raises(
            DuplicateModuleError, match="Module with name ticker has already been loaded"
        ):
            registry.register(Ticker())

    def test_not_a_module(self):
        with pytest.raises(InvalidModuleError):
            ModuleRegistry().register(object())
        with pytest.raises(InvalidModuleError):
            ModuleRegistry().register(dict)

    def test_missing_meta(self):
        with pytest.raises(InvalidModuleError):
            ModuleRegistry().register(NoMeta)

    def test_list_modules(self):
        registry = ModuleRegistry()
        registry.register(Ticker)
        listed = registry.list_modules()
        assert listed[0]["name"] == "ticker"
        assert listed[0]["stopped"] is False


class TestModuleLifecycle:
    """Test start and cooperative stop."""

    def test_stop_ends_every_loop(self):
        registry = ModuleRegistry()
        ticker = registry.register(Ticker)

        async def scenario():
            registry.start_all(MagicMock(), context())
            await asyncio.sleep(0.05)
            registry.stop_all()
            return await registry.wait_stopped(timeout=1)

        assert asyncio.run(scenario()) is True
        assert ticker.ticks >= 1
        assert ticker.stopped

    def test_failing_module_does_not_affect_others(self):
        registry = ModuleRegistry()
        registry.register(Crasher)
        ticker = registry.register(Ticker)

        async def scenario():
            registry.start_all(MagicMock(), context())
            await asyncio.sleep(0.03)
            registry.stop_all()
            await registry.wait_stopped(timeout=1)

        asyncio.run(scenario())
        assert ticker.ticks >= 1

    def test_sleep_wakes_on_stop(self):
        ticker = Ticker()

        async def scenario():
            sleeper = asyncio.create_task(ticker.sleep(10))
            await asyncio.sleep(0)
            ticker.stop()
            return await asyncio.wait_for(sleeper, timeout=1)

        assert asyncio.run(scenario()) is False


class TestDiscovery:
    """Test built-in module discovery."""

    def test_discovers_auto_friend_add(self):
        assert discover_modules()["auto_friend_add"] is AutoFriendAdd

    def test_load_modules(self):
        registry = ModuleRegistry()
        loaded = load_modules(registry, {"auto_friend_add": {"invite_on_add": True}})
        assert loaded[0].options["invite_on_add"] is True

    def test_load_unknown_module(self):
        with pytest.raises(ModuleError, match="Unknown module: nope"):
            load_modules(ModuleRegistry(), {"nope": {}})
