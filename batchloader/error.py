__all__ = ["LoaderError", "ConfigurationError"]


class LoaderError(Exception):
    """Base class for errors raised by the loaders themselves"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(LoaderError):
    """Query function, key function and declared types do not fit together

    Raised only while a loader is being constructed, it always means a
    programming mistake and is never raised when keys are loaded.
    """
