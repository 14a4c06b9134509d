# application/errors.py
# Error taxonomy shared by the store, the negotiator and the web layer.


class PastebinError(Exception):
    """Base class for all recoverable pastebin errors."""


class ExhaustedIDSpace(PastebinError):
    """No free identifier was found within the retry bound."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"No free identifier found after {attempts} attempts.")
        self.attempts = attempts


class NotAcceptable(PastebinError):
    """The client accepts none of the representations the endpoint offers."""

    def __init__(self, accept_header: str, supported: list[str]) -> None:
        super().__init__(
            f"None of {', '.join(supported)} satisfies Accept: '{accept_header}'."
        )
        self.accept_header = accept_header
        self.supported = supported


class InvalidInput(PastebinError, ValueError):
    """Payload rejected before touching the store (empty, oversized, wrong type)."""


class ConfigError(PastebinError, ValueError):
    """Configuration is invalid; raised at startup."""
