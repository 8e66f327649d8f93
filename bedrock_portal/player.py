"""Profiles and players.

A Profile is what the profile service knows about an account. A Player pairs
a profile with the member record it came from in a session snapshot.
"""

from dataclasses import dataclass, field
from typing import Optional


PROFILE_SETTINGS = [
    "GameDisplayName",
    "GameDisplayPicRaw",
    "Gamerscore",
    "Gamertag",
    "ModernGamertag",
]


@dataclass(frozen=True)
class Profile:
    """Xbox Live profile."""

    xuid: str
    gamertag: str = ""
    display_name: str = ""
    avatar: str = ""
    gamerscore: int = 0
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_profile_user(cls, user: dict) -> "Profile":
        """Parse one entry of a profile service ``profileUsers`` list.

        Args:
            user: {"id": "...", "settings": [{"id": "Gamertag", "value": "..."}]}
        """
        settings = {s.get("id"): s.get("value") for s in user.get("settings", [])}
        try:
            gamerscore = int(settings.get("Gamerscore") or 0)
        except (TypeError, ValueError):
            gamerscore = 0
        return cls(
            xuid=str(user.get("id", "")),
            gamertag=settings.get("Gamertag") or settings.get("ModernGamertag") or "",
            display_name=settings.get("GameDisplayName") or "",
            avatar=settings.get("GameDisplayPicRaw") or "",
            gamerscore=gamerscore,
            raw=settings,
        )

    @classmethod
    def from_people(cls, person: dict) -> "Profile":
        """Parse a peoplehub entry (followers/friends lists)."""
        try:
            gamerscore = int(person.get("gamerScore") or 0)
        except (TypeError, ValueError):
            gamerscore = 0
        return cls(
            xuid=str(person.get("xuid", "")),
            gamertag=person.get("gamertag") or "",
            display_name=person.get("displayName") or "",
            avatar=person.get("displayPicRaw") or "",
            gamerscore=gamerscore,
            raw=person,
        )


@dataclass(frozen=True)
class Player:
    """A session member joined with its profile."""

    profile: Profile
    session_member: Optional[dict] = field(default=None, compare=False)

    @property
    def xuid(self) -> str:
        return self.profile.xuid

    @property
    def gamertag(self) -> str:
        return self.profile.gamertag

    @classmethod
    def from_profile(cls, profile: Profile) -> "Player":
        return cls(profile=profile)

    def with_member(self, session_member: dict) -> "Player":
        return Player(profile=self.profile, session_member=session_member)


def member_xuid(member: dict) -> str:
    """Identity of a raw session member record."""
    return str(member.get("constants", {}).get("system", {}).get("xuid", ""))
