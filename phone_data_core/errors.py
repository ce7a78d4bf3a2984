"""Error types raised by location collaborators and handled by the controller.

None of these escape the acquisition controller; each is logged and turned
into a line on the location field.
"""
from typing import Optional


class PhoneDataError(Exception):
    """Base class for user-presentable errors."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class PermissionDenied(PhoneDataError):
    def __init__(self, message: str = "Location permission denied"):
        super().__init__("permission_denied", message)


class SettingsUnresolvable(PhoneDataError):
    def __init__(self, message: str = "Location services unavailable"):
        super().__init__("settings_unresolvable", message)


class ResolutionLaunchError(SettingsUnresolvable):
    """The settings resolution dialog could not be opened."""

    def __init__(self, message: str = "Error opening location settings"):
        super().__init__(message)
        self.code = "resolution_launch_failed"


class ProviderError(PhoneDataError):
    """Fetch or subscribe failed inside the location platform."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__("provider_error", message)
        self.cause = cause


class CallTimeout(ProviderError):
    def __init__(self, operation: str, timeout_s: float):
        super().__init__(f"{operation} timed out after {timeout_s:g}s")
        self.code = "timeout"
        self.operation = operation
        self.timeout_s = timeout_s
