"""Portal configuration.

Loaded from a YAML file (portal.yml) or built from a plain dict. Strings may
reference environment variables as ${VAR} or ${VAR:-default}.

Example portal.yml:

    ip: play.example.net
    port: 19132
    joinability: friends_of_friends
    world:
      host_name: My Server
      name: Survival
    auth:
      user_hash: ${XBL_USER_HASH}
      xsts_token: ${XBL_XSTS_TOKEN}
    modules:
      auto_friend_add:
        check_interval: 60
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from . import __version__
from .errors import ConfigError
from .session import Joinability, MINECRAFT_PROTOCOL_VERSION

DEFAULT_PORT = 19132
DEFAULT_JOINABILITY = "friends_of_friends"


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in strings."""
    if isinstance(value, str):
        pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

        def replacer(match):
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            return match.group(2) or ""

        return re.sub(pattern, replacer, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    else:
        return value


_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0", ""}


def _option(data: dict, key: str, alias: Optional[str] = None, default: Any = None) -> Any:
    """Read key, falling back to its camelCase alias."""
    if key in data:
        return data[key]
    if alias is not None and alias in data:
        return data[alias]
    return default


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ConfigError(f"Invalid {key} - Expected true or false, got {value!r}")


def _parse_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid {key} - Expected a number, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {key} - Expected a number, got {value!r}") from e


@dataclass
class WorldConfig:
    """What the session advertises about the world."""

    host_name: str = f"Bedrock Portal v{__version__}"
    name: str = "Bedrock Portal"
    version: str = __version__
    member_count: int = 0
    max_member_count: int = 10
    protocol: int = MINECRAFT_PROTOCOL_VERSION

    @classmethod
    def from_dict(cls, data: dict) -> "WorldConfig":
        """Accepts snake_case keys or their camelCase spelling (hostName)."""
        defaults = cls()
        return cls(
            host_name=str(_option(data, "host_name", "hostName", defaults.host_name)),
            name=str(_option(data, "name", default=defaults.name)),
            version=str(_option(data, "version", default=defaults.version)),
            member_count=_parse_int(
                _option(data, "member_count", "memberCount", defaults.member_count),
                "world.member_count",
            ),
            max_member_count=_parse_int(
                _option(data, "max_member_count", "maxMemberCount", defaults.max_member_count),
                "world.max_member_count",
            ),
            protocol=_parse_int(
                _option(data, "protocol", default=defaults.protocol), "world.protocol"
            ),
        )


@dataclass
class AuthConfig:
    """Pre-acquired Xbox Live credentials, used by the CLI."""

    user_hash: str = ""
    xsts_token: str = ""


@dataclass
class PortalConfig:
    """Parsed configuration object."""

    ip: Optional[str] = None
    port: Optional[int] = DEFAULT_PORT
    joinability: str = DEFAULT_JOINABILITY
    disable_alt_check: bool = False
    world: WorldConfig = field(default_factory=WorldConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    # module name -> options
    modules: dict[str, dict] = field(default_factory=dict)

    # Raw config for display
    _raw: dict = field(default_factory=dict)

    @property
    def joinability_policy(self) -> Joinability:
        return Joinability.from_key(self.joinability)

    @classmethod
    def from_dict(cls, data: dict) -> "PortalConfig":
        """Create config from dictionary.

        Keys may be snake_case (disable_alt_check) or camelCase
        (disableAltCheck).

        Raises:
            ConfigError: A value has the wrong type
        """
        data = _expand_env_vars(data or {})

        auth = data.get("auth", {}) or {}
        port = data.get("port", DEFAULT_PORT)

        return cls(
            ip=data.get("ip") or None,
            port=_parse_int(port, "port") if port not in (None, "") else None,
            joinability=data.get("joinability", DEFAULT_JOINABILITY),
            disable_alt_check=_parse_bool(
                _option(data, "disable_alt_check", "disableAltCheck", False),
                "disable_alt_check",
            ),
            world=WorldConfig.from_dict(data.get("world", {}) or {}),
            auth=AuthConfig(
                user_hash=_option(auth, "user_hash", "userHash", ""),
                xsts_token=_option(auth, "xsts_token", "xstsToken", ""),
            ),
            modules=dict(data.get("modules", {}) or {}),
            _raw=data,
        )

    @classmethod
    def load(cls, path: Path) -> "PortalConfig":
        """Load config from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)


def validate_options(config: PortalConfig) -> None:
    """Check the options needed to publish a session.

    Raises:
        ConfigError: ip or port missing, or joinability unknown
    """
    if not config.ip:
        raise ConfigError("No IP provided")
    if not config.port:
        raise ConfigError("No port provided")
    if config.joinability not in Joinability.keys():
        raise ConfigError(
            "Invalid joinability - Expected one of " + ", ".join(Joinability.keys())
        )


def find_config_path() -> Path:
    """Local portal.yml, then ~/.bedrock-portal/portal.yml."""
    local_config = Path("portal.yml")
    if local_config.exists():
        return local_config
    return Path.home() / ".bedrock-portal" / "portal.yml"
