"""Exception types raised by TxGuard."""


class GuardianError(Exception):
    """Base class for all TxGuard errors."""


class InputError(GuardianError, ValueError):
    """The request could not be turned into an analysis context."""


class KnowledgeBaseError(GuardianError):
    """Static pattern data is malformed."""


class FeedUnavailableError(GuardianError):
    """No external reputation source could be reached."""

    def __init__(self, address: str, failures: dict[str, str]):
        self.address = address
        self.failures = failures
        detail = ", ".join(f"{name}: {error}" for name, error in failures.items())
        super().__init__(f"All threat feeds failed for {address} ({detail})")
