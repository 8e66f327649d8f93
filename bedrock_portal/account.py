"""Alt-account check.

The portal adds and invites strangers, so it refuses to run on an account
that looks like someone's main account unless the check is disabled.
"""

from dataclasses import dataclass

from .interfaces import DirectoryClient

MAX_GAMERSCORE = 2500
MAX_TITLES = 5


@dataclass(frozen=True)
class AltCheckResult:
    is_alt: bool
    reason: str


async def alt_check(rest: DirectoryClient) -> AltCheckResult:
    """Decide whether the signed-in account is an alt.

    Args:
        rest: Directory client signed in as the account to check

    Returns:
        AltCheckResult; is_alt is False when the account looks genuine
    """
    profile = await rest.get_profile("me")

    if profile.gamerscore > MAX_GAMERSCORE:
        return AltCheckResult(False, f"Account has more than {MAX_GAMERSCORE} gamerscore")

    titles = await rest.get_title_history(profile.xuid)
    if len(titles) > MAX_TITLES:
        return AltCheckResult(False, f"Account has played more than {MAX_TITLES} titles")

    return AltCheckResult(True, "Account has low gamerscore and few titles")
