"""bedrock-portal - advertise a Minecraft Bedrock server through Xbox Live sessions."""

__version__ = "1.0.0"

from .config import PortalConfig, WorldConfig, validate_options
from .errors import (
    AltCheckError,
    AuthError,
    ChannelError,
    ConfigError,
    ConnectError,
    DirectoryError,
    PortalError,
    ProfileLookupError,
    PublishError,
    UpdateError,
)
from .events import EventBus, EventKind
from .interfaces import DirectoryClient, NotificationChannel, RtaEvent, TokenProvider
from .modules import (
    DuplicateModuleError,
    InvalidModuleError,
    Module,
    ModuleContext,
    ModuleMeta,
    ModuleRegistry,
)
from .player import Player, Profile
from .portal import BedrockPortal
from .session import Joinability, Session

__all__ = [
    "__version__",
    "BedrockPortal",
    # Config
    "PortalConfig",
    "WorldConfig",
    "validate_options",
    "Joinability",
    # Model
    "Session",
    "Player",
    "Profile",
    # Events
    "EventBus",
    "EventKind",
    "RtaEvent",
    # Collaborators
    "DirectoryClient",
    "NotificationChannel",
    "TokenProvider",
    # Modules
    "Module",
    "ModuleMeta",
    "ModuleContext",
    "ModuleRegistry",
    "DuplicateModuleError",
    "InvalidModuleError",
    # Errors
    "PortalError",
    "ConfigError",
    "AuthError",
    "AltCheckError",
    "ConnectError",
    "PublishError",
    "UpdateError",
    "ProfileLookupError",
    "DirectoryError",
    "ChannelError",
]
