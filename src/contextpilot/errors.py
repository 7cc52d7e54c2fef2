"""Exception taxonomy for contextpilot.

None of these cross a component boundary as an uncaught exception. They are
raised inside a component, caught where the component hands work to the
next stage, logged, and published as events on the bus.
"""


class ContextPilotError(Exception):
    """Base exception for all contextpilot errors."""

    pass


class ConfigurationError(ContextPilotError):
    """Provider credentials or endpoint missing.

    Never fatal: construction falls back to the local algorithm.
    """

    pass


class ExtractionError(ContextPilotError):
    """A source (file, commit, transcript) could not be read or parsed."""

    def __init__(self, source: str, message: str):
        """
        Initialize error with the offending source.

        Args:
            source: Path or identifier of the source that failed
            message: Human-readable failure description
        """
        self.source = source
        super().__init__(f"Extraction failed for {source}: {message}")


class ProviderError(ContextPilotError):
    """A similarity or summarization provider call failed."""

    pass


class WatcherError(ContextPilotError):
    """An OS-level watch could not be established or was lost."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Watch failed for {path}: {message}")
