"""Exceptions raised by the TickTick CLI and MCP server."""

from __future__ import annotations


class TickTickError(Exception):
    """Base exception for all ticktick-cli errors."""


class InvalidRegion(TickTickError):
    """Region is not one of the supported deployments."""

    def __init__(self, region: str, valid: tuple[str, ...]) -> None:
        self.region = region
        super().__init__(f'Invalid region "{region}". Must be one of: {", ".join(valid)}')


class NoConfigFound(TickTickError):
    """Neither environment variables nor a config file provide credentials."""


class InvalidConfigFile(TickTickError):
    """The config file exists but could not be parsed."""


class NotAuthenticated(TickTickError):
    """No usable access token is stored."""

    def __init__(self, message: str = "Not authenticated. Run: ticktick auth login") -> None:
        super().__init__(message)


class TokenExchangeFailed(TickTickError):
    """The OAuth token endpoint rejected an authorization code."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(f"Token exchange failed: {body}")


class TokenRefreshFailed(TickTickError):
    """The OAuth token endpoint rejected a refresh token."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(f"Token refresh failed: {body}")


class InboxNotFound(TickTickError):
    """The project listing has no inbox entry."""

    def __init__(self) -> None:
        super().__init__("Could not find inbox project. Please specify a project ID.")


class ValidationError(TickTickError):
    """User input rejected before any request was made."""


class InvalidReminderFormat(ValidationError):
    """Reminder string is not of the form 15m, 1h or 1d."""

    def __init__(self, reminder: str) -> None:
        self.reminder = reminder
        super().__init__(f'Invalid reminder "{reminder}". Use format like: 15m, 1h, 1d')


class InvalidPriorityValue(ValidationError):
    """Priority string is not one of none, low, medium, high."""

    def __init__(self, priority: str) -> None:
        self.priority = priority
        super().__init__(f'Invalid priority "{priority}". Valid options: none, low, medium, high')


class ApiRequestFailed(TickTickError):
    """The TickTick API returned a non-2xx response."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"API request failed ({status_code}): {body}")
