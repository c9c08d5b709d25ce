"""Custom exceptions for sparkstats with structured error information."""


class SparkStatsError(Exception):
    """Base exception for all sparkstats errors.

    Provides structured error information with actionable messages.
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class BattleFileNotFoundError(SparkStatsError):
    """Raised when a battle-result file cannot be found."""

    def __init__(self, path: str):
        message = f"Battle result file not found: {path}"
        details = {
            "path": path,
            "suggested_action": "Verify the file path exists and is accessible",
        }
        super().__init__(message, details)


class ReferenceDataError(SparkStatsError):
    """Raised when a reference CSV (characters or capsules) cannot be loaded."""

    def __init__(self, path: str, original_error: Exception = None):
        if original_error is not None:
            message = f"Cannot load reference data: {path} ({original_error})"
        else:
            message = f"Cannot load reference data: {path}"

        details = {
            "path": path,
            "original_error": str(original_error) if original_error else None,
            "suggested_action": (
                "Check the --characters/--capsules paths or the [reference] "
                "section of the config file"
            ),
        }
        super().__init__(message, details)
