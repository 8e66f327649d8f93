"""Error taxonomy for bedrock-portal.

Setup errors (config, auth, alt check, connect, publish) are fatal to
``BedrockPortal.start()``. Update and lookup errors wrap a single remote
call with the operation name and the identity it targeted.
"""

from typing import Optional


class PortalError(Exception):
    """Base class for all portal errors."""

    pass


class ConfigError(PortalError, ValueError):
    """Invalid portal options."""

    pass


class AuthError(PortalError):
    """Could not authenticate against Xbox Live."""

    pass


class AltCheckError(PortalError):
    """The account looks like a main account, not an alt."""

    pass


class ConnectError(PortalError):
    """Could not connect or subscribe to the RTA channel."""

    pass


class PublishError(PortalError):
    """Creating or publishing the session failed."""

    pass


class UpdateError(PortalError):
    """A partial session update failed."""

    def __init__(self, operation: str, target: Optional[str] = None, cause=None):
        self.operation = operation
        self.target = target
        message = f"Failed to {operation}"
        if target:
            message += f" ({target})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ProfileLookupError(PortalError):
    """Could not resolve an identifier to an Xbox profile."""

    def __init__(self, identifier: str, cause=None):
        self.identifier = identifier
        message = f"Failed to get profile for identifier: {identifier}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class DirectoryError(PortalError):
    """HTTP failure talking to an Xbox Live service."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = ""):
        self.status = status
        self.url = url
        super().__init__(message)


class ChannelError(PortalError):
    """RTA protocol failure."""

    pass
