"""
Storage errors raised by the option and document stores.
"""


class StorageError(Exception):
    """A durable read or write failed. The original exception is chained."""

    def __init__(self, message: str, *, key: str = ""):
        super().__init__(message)
        self.key = key
