"""Module base class and metadata.

Modules are long-running background tasks attached to a portal, e.g.
automatic friend management. All modules inherit from Module and define a
ModuleMeta.

Example:
    class Greeter(Module):
        meta = ModuleMeta(
            name="greeter",
            description="Invites a fixed gamertag every minute",
        )
        defaults = {"gamertag": "", "interval": 60}

        async def run(self, portal, context):
            async for _ in self.every(self.options["interval"]):
                try:
                    await portal.invite_player(self.options["gamertag"])
                except Exception as e:
                    self.log.warning("Invite failed: %s", e)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from ..interfaces import DirectoryClient, NotificationChannel


@dataclass
class ModuleMeta:
    """Module metadata - defines identity."""

    name: str  # Unique key: "auto_friend_add"
    description: str
    version: str = "1.0.0"

    def __post_init__(self):
        if not self.name:
            raise ValueError("Module name is required")
        if not self.description:
            raise ValueError("Module description is required")


@dataclass
class ModuleContext:
    """Handles passed to Module.run()."""

    rest: DirectoryClient
    rta: NotificationChannel


class Module(ABC):
    """Base class for all modules.

    Modules must:
    1. Define a `meta` class attribute with ModuleMeta
    2. Implement async run(portal, context)
    3. Check `stopped` (or iterate `every()`) between units of work

    The runtime never cancels run(); stop() only sets the flag and wakes a
    pending every()/sleep().
    """

    meta: ModuleMeta  # Must be defined by subclass
    defaults: dict = {}

    def __init__(self):
        self.options: dict = dict(self.defaults)
        self.stopped: bool = False
        self._wake: Optional[asyncio.Event] = None
        self.log = logging.getLogger(f"bedrock_portal.modules.{self.meta.name}")

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def description(self) -> str:
        return self.meta.description

    def apply_options(self, options: dict) -> None:
        """Merge options over the module defaults."""
        self.options = {**self.defaults, **(options or {})}

    @abstractmethod
    async def run(self, portal, context: ModuleContext) -> None:
        """Module body. Returns once stopped."""
        pass

    def stop(self) -> None:
        self.stopped = True
        if self._wake is not None:
            self._wake.set()

    def reset(self) -> None:
        """Clear the stop flag so run() can be started again."""
        self.stopped = False
        self._wake = None

    async def sleep(self, seconds: float) -> bool:
        """Sleep, waking early on stop().

        Returns:
            False if the module was stopped
        """
        if self.stopped:
            return False
        if self._wake is None:
            self._wake = asyncio.Event()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return not self.stopped

    async def every(self, interval: float) -> AsyncIterator[int]:
        """Yield iteration numbers until stopped, sleeping `interval` between.

        A stop never interrupts an iteration; it ends the sequence before the
        next one.
        """
        iteration = 0
        while not self.stopped:
            yield iteration
            iteration += 1
            if not await self.sleep(interval):
                break
