"""Membership reconciler - turns RTA notifications into join/leave events.

Notification payloads are not trusted: every notification triggers a full
snapshot fetch, and the member list is diffed against the cached players by
xuid. Notifications are processed one at a time through the SerialActor, in
arrival order.
"""

import logging
from typing import Iterable, Optional

from .actor import SerialActor
from .events import EventBus, EventKind
from .interfaces import RtaEvent
from .player import Player, Profile, member_xuid
from .publisher import SessionPublisher

log = logging.getLogger("bedrock_portal.reconciler")


def diff_players(
    previous: Iterable[Player], current: Iterable[Player]
) -> tuple[list[Player], list[Player]]:
    """Split a membership change into joins and leaves.

    Returns:
        (joined, left): joined in current order, left in previous order
    """
    previous = list(previous)
    current = list(current)
    previous_ids = {p.xuid for p in previous}
    current_ids = {p.xuid for p in current}
    joined = [p for p in current if p.xuid not in previous_ids]
    left = [p for p in previous if p.xuid not in current_ids]
    return joined, left


def _member_sort_key(key: str):
    return (0, int(key), "") if str(key).isdigit() else (1, 0, str(key))


def session_members(snapshot: Optional[dict], owner_xuid: str) -> list[dict]:
    """Member records of a snapshot in index order, without the owner."""
    members = (snapshot or {}).get("members") or {}
    result = []
    seen = set()
    for key in sorted(members, key=_member_sort_key):
        member = members[key]
        if not member:
            continue
        xuid = member_xuid(member)
        if not xuid or xuid == owner_xuid or xuid in seen:
            continue
        seen.add(xuid)
        result.append(member)
    return result


class MembershipReconciler:
    """Keeps session.players in step with the directory."""

    def __init__(self, publisher: SessionPublisher, events: EventBus, actor: SerialActor):
        self.publisher = publisher
        self.events = events
        self.actor = actor

    @property
    def session(self):
        return self.publisher.session

    def submit(self, event: RtaEvent) -> bool:
        """Queue one notification for reconciliation."""

        async def work():
            await self.reconcile(event)

        return self.actor.submit(work, label="reconcile")

    async def reconcile(
        self, event: Optional[RtaEvent] = None
    ) -> Optional[tuple[list[Player], list[Player]]]:
        """Fetch the snapshot and emit the membership delta.

        Must only run through the actor (or with nothing else writing
        session.players).

        Returns:
            (joined, left), or None if the snapshot could not be fetched
        """
        try:
            snapshot = await self.publisher.get_session()
        except Exception as e:
            log.warning("Failed to fetch session after RTA event: %s", e)
            return None

        if event is not None:
            await self.events.emit(EventKind.RTA_EVENT, event)
        await self.events.emit(EventKind.SESSION_UPDATED, snapshot)
        log.debug("Received RTA event, session has been updated")

        previous = self.session.players
        players = await self._build_players(snapshot, previous)
        joined, left = diff_players(previous, players)

        self.session.players = tuple(players)

        for player in joined:
            log.info("Player joined: %s (%s)", player.gamertag, player.xuid)
            await self.events.emit(EventKind.PLAYER_JOIN, player)
        for player in left:
            log.info("Player left: %s (%s)", player.gamertag, player.xuid)
            await self.events.emit(EventKind.PLAYER_LEAVE, player)

        return joined, left

    async def _build_players(self, snapshot: dict, previous: tuple[Player, ...]) -> list[Player]:
        members = session_members(snapshot, self.publisher.owner.xuid)
        known = {p.xuid: p for p in previous}

        unresolved = [member_xuid(m) for m in members if member_xuid(m) not in known]
        profiles = await self._resolve_profiles(unresolved)

        players = []
        for member in members:
            xuid = member_xuid(member)
            if xuid in known:
                players.append(known[xuid].with_member(member))
            elif xuid in profiles:
                players.append(Player(profile=profiles[xuid], session_member=member))
            else:
                log.debug("No profile for %s yet, skipping this cycle", xuid)
        return players

    async def _resolve_profiles(self, xuids: list[str]) -> dict[str, Profile]:
        if not xuids:
            return {}
        try:
            profiles = await self.publisher.rest.get_profile_batch(xuids)
        except Exception as e:
            log.warning("Profile lookup failed for %d member(s): %s", len(xuids), e)
            return {}
        return {str(p.xuid): p for p in profiles}
