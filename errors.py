class OracleError(Exception):
    """Base class for failures that abort an oracle update cycle."""


class AnalysisError(OracleError):
    """The language-model provider could not be reached or returned an error."""


class PublishError(OracleError):
    """Signing, broadcasting or confirming the oracle transaction failed."""


class BusyError(OracleError):
    """An update cycle is already running."""


class SelectionError(ValueError):
    """The requested chain selection is not acceptable."""
