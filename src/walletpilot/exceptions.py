"""walletpilot exception hierarchy."""

from __future__ import annotations


class WalletPilotError(Exception):
    """Base exception for all walletpilot errors."""


class InvalidRequestError(WalletPilotError):
    """Raised when a request is malformed; nothing has been touched yet."""


class InvalidPageNameError(InvalidRequestError):
    """Raised when a page name is missing, empty or too long.

    Attributes:
        name: The rejected value (may be ``None``).
    """

    def __init__(self, name: object, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(reason)


class PageNotFoundError(WalletPilotError):
    """Raised when closing a page name the registry does not know."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"page not found: {name}")


class WalletNotInitializedError(WalletPilotError):
    """Raised when a wallet action is requested before the controller exists."""

    def __init__(self, message: str = "wallet not initialized") -> None:
        super().__init__(message)


class WaitTimeoutError(WalletPilotError):
    """Raised when a poll or wait does not succeed within its timeout.

    Attributes:
        timeout: The timeout in seconds.
        description: What was being waited for.
    """

    def __init__(self, timeout: float, description: str) -> None:
        self.timeout = timeout
        self.description = description
        super().__init__(f"{description} not met within {timeout:g}s")


class PageCreationTimeoutError(WaitTimeoutError):
    """Raised when the browser does not open a new page in time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(timeout, "page creation")


class NoRecognizerMatchedError(WalletPilotError):
    """Raised when a required UI step finds none of its candidate elements.

    Attributes:
        step: Name of the step.
        tried: Names of the recognizers that were tried, in order.
    """

    def __init__(self, step: str, tried: list[str]) -> None:
        self.step = step
        self.tried = list(tried)
        super().__init__(f"{step}: no recognizer matched (tried {', '.join(tried) or 'nothing'})")


class ExtensionNotFoundError(WalletPilotError):
    """Raised when the wallet extension is not among the installed extensions."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'extension "{name}" not installed')


class OnboardingError(WalletPilotError):
    """Raised when first-run wallet import cannot reach a required screen.

    Attributes:
        state: The onboarding state that failed.
    """

    def __init__(self, state: str, message: str) -> None:
        self.state = state
        super().__init__(f"onboarding failed in {state}: {message}")
