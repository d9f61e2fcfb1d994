"""Error taxonomy shared by every leaderboard layer."""


class LeaderboardError(Exception):
    """Base class for all leaderboard failures."""


class ValidationError(LeaderboardError):
    """Submission rejected before any side effect took place."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class DecodeError(LeaderboardError):
    """A single ledger message could not be parsed into a score."""


class LedgerUnavailable(LeaderboardError):
    """The remote ledger failed or timed out on write, confirm or read."""

    def __init__(self, message: str, transaction_id: str | None = None):
        super().__init__(message)
        self.transaction_id = transaction_id


class CacheCorrupt(LeaderboardError):
    """The persisted local snapshot could not be read back."""


class ConfigurationError(LeaderboardError):
    """Required environment is missing or malformed."""
