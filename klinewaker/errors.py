"""Exception types for K-Line Waker."""


class KLineWakerError(Exception):
    """Base class for all K-Line Waker errors."""


class NotFoundError(KLineWakerError):
    """Raised when a referenced entity does not exist."""


class ImageNotFoundError(NotFoundError):
    """Raised when a journal image file is missing from the image store."""

    def __init__(self, filename: str):
        super().__init__(f"Image not found: {filename}")
        self.filename = filename


class ReferentialIntegrityError(KLineWakerError):
    """Raised when deleting an entity that journal entries still reference.

    The ``code`` attribute is one of ``INSTRUMENT_IN_USE``, ``ACCOUNT_IN_USE`` or
    ``STRATEGY_IN_USE`` and is also the string form of the error, so callers
    can tell the two cases apart without parsing a message.
    """

    INSTRUMENT_IN_USE = "INSTRUMENT_IN_USE"
    ACCOUNT_IN_USE = "ACCOUNT_IN_USE"
    STRATEGY_IN_USE = "STRATEGY_IN_USE"

    def __init__(self, code: str, references: int = 0):
        super().__init__(code)
        self.code = code
        self.references = references


class StoreError(KLineWakerError):
    """Raised when a backing store call fails after local state was rolled back."""


class ConfigError(KLineWakerError):
    """Raised when the configuration file cannot be read or validated."""
