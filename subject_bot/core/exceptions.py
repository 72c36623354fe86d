"""Domain exceptions."""


class SubjectBotException(Exception):
    """Base exception for Subject Bot application."""

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(SubjectBotException):
    """Invalid or missing configuration."""

    def __init__(self, details: str):
        super().__init__(
            message=f"Configuration error: {details}",
            code="CONFIGURATION_ERROR"
        )


class SessionStateError(SubjectBotException):
    """Session invariant violated at a mutation boundary."""

    def __init__(self, chat_id: int, reason: str):
        self.chat_id = chat_id
        super().__init__(
            message=f"Invalid session state for chat {chat_id}: {reason}",
            code="SESSION_STATE_ERROR"
        )


class ChainNotFoundError(SubjectBotException):
    """Unknown language/chain combination."""

    def __init__(self, language: str, chain: str = None):
        message = f"No question chains configured for language '{language}'"
        if chain is not None:
            message = f"Chain '{chain}' not found for language '{language}'"

        super().__init__(
            message=message,
            code="CHAIN_NOT_FOUND"
        )


class TranscriptParseError(SubjectBotException):
    """Imported transcript has no recognizable question/answer pairs."""

    def __init__(self, details: str = None):
        message = "No question/answer pairs found in transcript"
        if details:
            message += f": {details}"

        super().__init__(
            message=message,
            code="TRANSCRIPT_PARSE_ERROR"
        )
