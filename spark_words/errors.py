from __future__ import annotations


class SparkWordsError(Exception):
    pass


class StreamError(SparkWordsError):
    """The generation stream failed; the message is shown to the user as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
