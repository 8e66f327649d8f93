"""Auto friend add - follows back followers, unfollows those who left.

Options:
    invite_on_add: Invite each newly added friend to the session (False)
    condition_to_meet: Callable(peoplehub record) -> bool; accounts failing it
        are never added and are removed if already friends (accept all)
    check_interval: Seconds between sweeps (30)
    add_interval: Seconds between two adds (2)
    remove_interval: Seconds between two removals (2)
"""

from ...events import EventKind
from ...player import Player, Profile
from ..base import Module, ModuleContext, ModuleMeta


def _accept_all(_person: dict) -> bool:
    return True


class AutoFriendAdd(Module):
    """Keeps the friend list in sync with the follower list."""

    meta = ModuleMeta(
        name="auto_friend_add",
        description="Automatically adds followers as friends",
        version="1.0.0",
    )

    defaults = {
        "invite_on_add": False,
        "condition_to_meet": _accept_all,
        "check_interval": 30,
        "add_interval": 2,
        "remove_interval": 2,
    }

    async def run(self, portal, context: ModuleContext) -> None:
        async for _ in self.every(self.options["check_interval"]):
            try:
                await self.sweep(portal, context)
            except Exception as e:
                self.log.warning("Error: %s", e)

    async def sweep(self, portal, context: ModuleContext) -> None:
        """One add pass and one remove pass."""
        rest = context.rest
        condition = self.options["condition_to_meet"]

        self.log.debug("Checking for followers to add")
        followers = await self._fetch(rest.get_followers, "followers")
        self.log.debug("Found %d follower(s)", len(followers))

        needs_adding = [
            person
            for person in followers
            if not person.get("isFollowedByCaller") and condition(person)
        ]
        if needs_adding:
            self.log.debug(
                "Adding %d account(s) [%s]",
                len(needs_adding),
                ", ".join(p.get("gamertag", "") for p in needs_adding),
            )

        for person in needs_adding:
            if self.stopped:
                return
            await self._add(portal, rest, person)
            await self.sleep(self.options["add_interval"])

        self.log.debug("Checking for friends to remove")
        friends = await self._fetch(rest.get_friends, "friends")
        self.log.debug("Found %d friend(s)", len(friends))

        needs_removing = [
            person
            for person in friends
            if not person.get("isFollowingCaller") or not condition(person)
        ]
        if needs_removing:
            self.log.debug(
                "Removing %d account(s) [%s]",
                len(needs_removing),
                ", ".join(p.get("gamertag", "") for p in needs_removing),
            )

        for person in needs_removing:
            if self.stopped:
                return
            await self._remove(portal, rest, person)
            await self.sleep(self.options["remove_interval"])

    async def _fetch(self, fetch, what: str) -> list[dict]:
        try:
            return await fetch()
        except Exception as e:
            self.log.debug("Failed to fetch %s: %s", what, e)
            return []

    async def _add(self, portal, rest, person: dict) -> None:
        gamertag = person.get("gamertag", person.get("xuid"))
        try:
            await rest.add_friend(person["xuid"])
        except Exception as e:
            raise RuntimeError(f"Failed to add {gamertag}") from e

        if self.options["invite_on_add"]:
            try:
                await portal.invite_player(person["xuid"])
            except Exception as e:
                raise RuntimeError(f"Failed to invite {gamertag}") from e

        await portal.emit(EventKind.FRIEND_ADDED, Player.from_profile(Profile.from_people(person)))
        self.log.debug("Added %s", gamertag)

    async def _remove(self, portal, rest, person: dict) -> None:
        gamertag = person.get("gamertag", person.get("xuid"))
        try:
            await rest.remove_friend(person["xuid"])
        except Exception as e:
            raise RuntimeError(f"Failed to remove {gamertag}") from e

        await portal.emit(EventKind.FRIEND_REMOVED, Player.from_profile(Profile.from_people(person)))
        self.log.debug("Removed %s", gamertag)
