"""
Exception hierarchy for the marketplace automation.
"""
from typing import Optional


class AutomationError(Exception):
    """Base error. Carries the driver mode that was active when it happened."""

    def __init__(self, message: str, mode=None):
        super().__init__(message)
        self.message = message
        self.mode = mode

    def __str__(self) -> str:
        if self.mode is None:
            return self.message
        return f"[{getattr(self.mode, 'value', self.mode)}] {self.message}"


class InitializationFailure(AutomationError):
    """No driver could be brought up."""


class AuthenticationFailure(AutomationError):
    """Credentials rejected or login flow could not be completed."""


class NavigationFailure(AutomationError):
    """Marketplace pages could not be reached."""


class ListingCreationFailure(AutomationError):
    """Form fill or submission failed."""


class FieldNotFound(ListingCreationFailure):
    """A required form field did not resolve with any locator."""

    def __init__(self, field: str, mode=None):
        super().__init__(f"Could not find {field} field", mode)
        self.field = field


class SubmissionAmbiguous(ListingCreationFailure):
    """The post-submit URL did not look like a finished listing."""

    def __init__(self, url: str, mode=None):
        super().__init__(f"Listing submission may have failed (landed on {url})", mode)
        self.url = url


class RemoteSessionError(AutomationError):
    """Remote browser cloud REST call failed."""


class SheetStructureError(AutomationError):
    """Spreadsheet header does not match the expected columns."""


class ControlError(Exception):
    """Control command not valid for the current loop state."""

    def __init__(self, message: str, state: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.state = state
