"""Exceptions raised by the translation layer."""


class AIServiceError(RuntimeError):
    """Raised when the text-generation service fails or answers unexpectedly."""


class TokenLimitError(AIServiceError):
    """Raised when a request would exceed the token budget."""


class TranslationError(RuntimeError):
    """A translation that could not be completed.

    The message is meant to be shown to the user as-is.
    """
