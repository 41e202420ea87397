"""
Custom exception hierarchy for feecheck.

Each exception maps to a specific CLI exit code and JSON error_code field.
cli.py catches all FeecheckError subclasses and formats them as JSON output.

Exit code mapping:
  1 — FeecheckError (generic CLI error)
  2 — APIError (invalid key, upstream rate limit, upstream rejection)
  3 — NetworkError (timeout, connection refused)
  4 — DataError (invalid mint, malformed upstream payload)
  5 — ConfigError (missing API key, malformed config)
  7 — ThrottledError (local request limit exceeded)
"""


class FeecheckError(Exception):
    """Base exception for all feecheck errors."""

    exit_code: int = 1
    error_code: str = "unknown_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class APIError(FeecheckError):
    """Upstream API returned an error response."""

    exit_code = 2
    error_code = "api_error"


class UpstreamRejectedError(APIError):
    """Bags API answered with success=false or an unreadable body."""

    error_code = "upstream_rejected"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class InvalidAPIKeyError(APIError):
    """API key was rejected by the upstream."""

    error_code = "invalid_api_key"


class RateLimitError(APIError):
    """Upstream API rate limit exceeded."""

    error_code = "rate_limited"

    def __init__(self, message: str, retry_after: int = 60) -> None:
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after


class NetworkError(FeecheckError):
    """Network connectivity issue: timeout or connection failure."""

    exit_code = 3
    error_code = "network_error"


class NetworkTimeoutError(NetworkError):
    """Request timed out."""

    error_code = "network_timeout"


class ConnectionFailedError(NetworkError):
    """Could not connect to API endpoint."""

    error_code = "connection_failed"


class DataError(FeecheckError):
    """Data validation error."""

    exit_code = 4
    error_code = "data_error"


class InvalidMintError(DataError):
    """Token mint is not a well-formed Base58 address."""

    error_code = "invalid_mint"


class ConfigError(FeecheckError):
    """Config is missing or malformed."""

    exit_code = 5
    error_code = "config_error"


class ConfigInvalidError(ConfigError):
    """Config file exists but contains invalid TOML or invalid values."""

    error_code = "config_invalid"


class APIKeyMissingError(ConfigError):
    """No Bags API key configured; set BAGS_API_KEY or api.bags_api_key."""

    error_code = "api_key_missing"


class ThrottledError(FeecheckError):
    """Caller exceeded the local request budget."""

    exit_code = 7
    error_code = "too_many_requests"

    def __init__(self, message: str, retry_after: int = 60) -> None:
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after
