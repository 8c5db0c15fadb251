"""Base exceptions for the pairing service."""


class WapairError(Exception):
    """Base exception for all wapair errors."""

    pass


class ConfigError(WapairError):
    """Configuration could not be loaded or is invalid."""

    pass


class ProviderError(WapairError):
    """Connection provider failed or is unavailable."""

    pass


class QrRenderError(WapairError):
    """QR payload could not be rendered to an image."""

    pass


class PhoneValidationError(WapairError):
    """Phone number rejected at the boundary."""

    pass


class StartupError(WapairError):
    """Service could not start (e.g. port already in use)."""

    pass
