"""
Error taxonomy for the completion relay.

Only two sentences ever reach a caller's error callback; the exception
itself goes to the log.
"""

QUOTA_EXCEEDED_MESSAGE = "The app has not enough credits, please try again later."
GENERIC_ERROR_MESSAGE = "Unknown error occurred. We're working on it."

INSUFFICIENT_QUOTA_CODE = "insufficient_quota"


class RelayError(Exception):
    """Base class for errors raised while relaying a completion."""
    pass


class QuotaExceeded(RelayError):
    """The hosted API rejected the request for insufficient quota."""
    pass


class GenericStreamFailure(RelayError):
    """Any other failure talking to the hosted API."""
    pass


class MalformedFunctionCall(RelayError):
    """Function-call arguments did not validate against the declared schema."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        self.detail = detail
        super().__init__(
            f"Invalid function call in message for '{name}'. "
            f"Expected a function call object{': ' + detail if detail else ''}"
        )


class UnknownFunction(RelayError, KeyError):
    """The model called a function that was never declared."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Model called undeclared function '{self.name}'"


def is_quota_error(exc: BaseException) -> bool:
    """
    Decide whether an exception means the account ran out of quota.

    Recognizes our own QuotaExceeded, SDK-style InsufficientQuotaError
    classes, and anything carrying code == "insufficient_quota".
    """
    if isinstance(exc, QuotaExceeded):
        return True
    if type(exc).__name__ == "InsufficientQuotaError":
        return True
    return getattr(exc, "code", None) == INSUFFICIENT_QUOTA_CODE


def user_message_for(exc: BaseException) -> str:
    """Map any failure to one of the two fixed user-facing messages."""
    if is_quota_error(exc):
        return QUOTA_EXCEEDED_MESSAGE
    return GENERIC_ERROR_MESSAGE
