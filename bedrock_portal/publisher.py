"""Session publisher - creates the session and applies partial updates.

Every write to the session directory goes through here. Failures are
wrapped with the operation name so callers can tell a failed member-count
update from a failed invite.
"""

import logging

from .config import PortalConfig
from .errors import ProfileLookupError, PublishError, UpdateError
from .interfaces import DirectoryClient
from .player import Profile
from .session import (
    CONTRACT_VERSION,
    HANDLE_ENDPOINT,
    MINECRAFT_TITLE_ID,
    Session,
    build_handle_body,
    build_session_body,
)

log = logging.getLogger("bedrock_portal.publisher")


class SessionPublisher:
    """Writes the session record and its handles."""

    def __init__(
        self,
        rest: DirectoryClient,
        session: Session,
        config: PortalConfig,
        owner: Profile,
    ):
        self.rest = rest
        self.session = session
        self.config = config
        self.owner = owner

    # --- Reads ---

    async def get_session(self) -> dict:
        """Fetch the full session snapshot."""
        snapshot = await self.rest.get(self.session.url, contract_version=CONTRACT_VERSION)
        self.session.snapshot = snapshot
        return snapshot

    # --- Creation ---

    def session_body(self, connection_id: str) -> dict:
        return build_session_body(
            owner_xuid=self.owner.xuid,
            connection_id=connection_id,
            joinability=self.config.joinability_policy,
            world=self.config.world,
            transport=(self.config.ip, self.config.port),
            subscription_id=self.session.ref.subscription_id,
        )

    async def create_and_publish(self, connection_id: str) -> dict:
        """Create the session, advertise it, and read it back.

        Returns:
            Session snapshot as stored by the directory

        Raises:
            PublishError: Any of the remote calls failed
        """
        self.session.players = ()

        try:
            await self.update_session(self.session_body(connection_id))
            log.debug("Created session, name: %s", self.session.name)

            await self.publish_activity()

            snapshot = await self.get_session()

            # The directory normalizes some properties; write them back as stored.
            await self.update_session({"properties": snapshot.get("properties", {})})
        except Exception as e:
            raise PublishError(f"Failed to publish session {self.session.name}: {e}") from e

        log.info("Published session, name: %s", self.session.name)
        return snapshot

    # --- Partial updates ---

    async def update_session(self, payload: dict) -> None:
        try:
            await self.rest.put(
                self.session.url,
                data=dict(payload),
                contract_version=CONTRACT_VERSION,
            )
        except Exception as e:
            raise UpdateError("update session", self.session.name, e) from e

    async def update_handle(self, payload: dict) -> None:
        try:
            await self.rest.post(
                HANDLE_ENDPOINT,
                data=dict(payload),
                contract_version=CONTRACT_VERSION,
            )
        except Exception as e:
            raise UpdateError(f"post {payload.get('type')} handle", self.session.name, e) from e

    async def publish_activity(self) -> None:
        await self.update_handle(build_handle_body(self.session.ref, "activity"))

    async def update_connection(self, connection_id: str) -> None:
        await self.update_session(
            {
                "members": {
                    "me": {
                        "properties": {
                            "system": {
                                "active": True,
                                "connection": connection_id,
                            }
                        }
                    }
                }
            }
        )

    async def update_member_count(self, count: int) -> None:
        await self.update_session({"properties": {"custom": {"MemberCount": int(count)}}})

    async def retract_membership(self) -> None:
        await self.update_session({"members": {"me": None}})

    async def invite_player(self, identifier: str) -> Profile:
        """Invite a gamertag or xuid to the session.

        Raises:
            ProfileLookupError: identifier did not resolve; nothing was sent
            UpdateError: the invite handle could not be posted
        """
        log.debug("Inviting player, identifier: %s", identifier)

        try:
            profile = await self.rest.get_profile(identifier)
        except Exception as e:
            raise ProfileLookupError(identifier, e) from e

        body = build_handle_body(
            self.session.ref,
            "invite",
            invitedXuid=str(profile.xuid),
            inviteAttributes={"titleId": MINECRAFT_TITLE_ID},
        )
        try:
            await self.rest.post(HANDLE_ENDPOINT, data=body, contract_version=CONTRACT_VERSION)
        except Exception as e:
            raise UpdateError("invite player", profile.xuid, e) from e

        log.debug("Invited player, xuid: %s", profile.xuid)
        return profile
