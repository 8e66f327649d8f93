"""Xbox Live REST client.

Implements DirectoryClient on top of httpx. Every request carries the XBL3.0
authorization header from a TokenProvider and an explicit contract version.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .errors import DirectoryError
from .interfaces import DirectoryClient, TokenProvider, XboxToken
from .player import PROFILE_SETTINGS, Profile

log = logging.getLogger("bedrock_portal.rest")

PROFILE_URL = "https://profile.xboxlive.com"
PEOPLEHUB_URL = "https://peoplehub.xboxlive.com"
SOCIAL_URL = "https://social.xboxlive.com"
TITLEHUB_URL = "https://titlehub.xboxlive.com"


class StaticTokenProvider(TokenProvider):
    """Serves a token acquired elsewhere."""

    def __init__(self, user_hash: str, xsts_token: str):
        self._token = XboxToken(user_hash=user_hash, xsts_token=xsts_token)

    async def get_xbox_token(self) -> XboxToken:
        return self._token


def user_path(identifier: str) -> str:
    """Profile service path segment for "me", a xuid or a gamertag."""
    identifier = str(identifier)
    if identifier == "me":
        return "me"
    if identifier.isdigit():
        return f"xuid({identifier})"
    return f"gt({quote(identifier)})"


class XboxRest(DirectoryClient):
    """httpx-backed DirectoryClient."""

    def __init__(
        self,
        auth: TokenProvider,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self._auth = auth
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "XboxRest":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        url: str,
        contract_version: int,
        data: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        token = await self._auth.get_xbox_token()
        headers = {
            "Authorization": token.authorization,
            "x-xbl-contract-version": str(contract_version),
            "Accept": "application/json",
            "Accept-Language": "en-US",
        }

        try:
            response = await self._client.request(
                method, url, headers=headers, json=data, params=params
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DirectoryError(
                f"{method} {url} failed: {e.response.status_code} - {e.response.text}",
                status=e.response.status_code,
                url=url,
            ) from e
        except httpx.RequestError as e:
            raise DirectoryError(f"{method} {url} failed: {e}", url=url) from e

        log.debug("%s %s -> %s", method, url, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # --- Generic verbs ---

    async def get(self, url: str, contract_version: int, params: Optional[dict] = None) -> Any:
        return await self._request("GET", url, contract_version, params=params)

    async def put(self, url: str, data: dict, contract_version: int) -> Any:
        return await self._request("PUT", url, contract_version, data=data)

    async def post(self, url: str, data: dict, contract_version: int) -> Any:
        return await self._request("POST", url, contract_version, data=data)

    async def delete(self, url: str, contract_version: int) -> Any:
        return await self._request("DELETE", url, contract_version)

    # --- Profiles ---

    async def get_profile(self, identifier: str) -> Profile:
        data = await self.get(
            f"{PROFILE_URL}/users/{user_path(identifier)}/profile/settings",
            contract_version=3,
            params={"settings": ",".join(PROFILE_SETTINGS)},
        )
        users = (data or {}).get("profileUsers") or []
        if not users:
            raise DirectoryError(f"No profile found for {identifier}")
        return Profile.from_profile_user(users[0])

    async def get_profile_batch(self, xuids: list[str]) -> list[Profile]:
        if not xuids:
            return []
        data = await self.post(
            f"{PROFILE_URL}/users/batch/profile/settings",
            data={"userIds": [str(x) for x in xuids], "settings": PROFILE_SETTINGS},
            contract_version=3,
        )
        return [Profile.from_profile_user(u) for u in (data or {}).get("profileUsers", [])]

    # --- Social ---

    async def get_followers(self) -> list[dict]:
        data = await self.get(
            f"{PEOPLEHUB_URL}/users/me/people/followers/decoration/detail",
            contract_version=5,
        )
        return (data or {}).get("people", [])

    async def get_friends(self) -> list[dict]:
        data = await self.get(
            f"{PEOPLEHUB_URL}/users/me/people/social/decoration/detail",
            contract_version=5,
        )
        return (data or {}).get("people", [])

    async def add_friend(self, xuid: str) -> None:
        await self.put(f"{SOCIAL_URL}/users/me/people/xuid({xuid})", data={}, contract_version=2)

    async def remove_friend(self, xuid: str) -> None:
        await self.delete(f"{SOCIAL_URL}/users/me/people/xuid({xuid})", contract_version=2)

    async def get_title_history(self, xuid: str) -> list[dict]:
        data = await self.get(
            f"{TITLEHUB_URL}/users/xuid({xuid})/titles/titlehistory/decoration/scid",
            contract_version=2,
        )
        return (data or {}).get("titles", [])
