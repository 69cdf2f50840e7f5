class RewriteError(Exception):
    """Base class for failures of a rewrite request."""
    pass

class InvalidInput(RewriteError):
    pass

class MissingCredential(RewriteError):
    pass

class RewriteTimeout(RewriteError):
    pass

class ProviderError(RewriteError):
    """The rewrite API answered with a non-success status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"Rewrite API {status}: {message}")
        self.status = status
        self.message = message

class MalformedResponse(RewriteError):
    """The rewrite API answered successfully but without any text block."""

    def __init__(self, raw_prefix: str):
        super().__init__(f"Rewrite API success response but no text block. First 300 chars: {raw_prefix}")
        self.raw_prefix = raw_prefix

class DraftError(Exception):
    pass

class DraftNotFound(DraftError):
    pass

class ChannelMismatch(DraftError):
    """A draft was confirmed from a chat other than the one it was composed for."""

    def __init__(self, expected_channel_id: int, actual_channel_id: int):
        super().__init__("This draft was composed for another chat. Run /compose there again.")
        self.expected_channel_id = expected_channel_id
        self.actual_channel_id = actual_channel_id
