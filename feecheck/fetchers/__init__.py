"""
Fetcher layer for feecheck.

Provides `get_source()`, returning the upstream data source configured for
this run. Every source implements TokenDataSource.

Usage:
    from feecheck.fetchers import get_source
    async with get_source(config) as source:
        raw = await source.fetch_all_token_data(mint)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feecheck.config import FeecheckConfig
    from feecheck.fetchers.bags import BagsClient
    from feecheck.models import RawTokenData


@runtime_checkable
class TokenDataSource(Protocol):
    """
    Protocol for anything that can produce RawTokenData for a mint.

    Sources are responsible for:
    - Fetching the five raw collections (all-or-nothing)
    - Translating transport failures into feecheck exceptions

    Sources are NOT responsible for:
    - Validating the mint (that's validation.py)
    - Any analysis (that's analyzer.py)
    """

    async def fetch_all_token_data(self, token_mint: str) -> RawTokenData:
        """
        Raises:
            APIKeyMissingError: No API key configured
            InvalidAPIKeyError: Key rejected upstream
            RateLimitError: Upstream rate limit hit
            UpstreamRejectedError: Upstream answered success=false
            NetworkTimeoutError / ConnectionFailedError: Transport failure
        """
        ...


def get_source(config: FeecheckConfig) -> BagsClient:
    """Factory: Bags client configured from `config.api`."""
    from feecheck.fetchers.bags import BagsClient

    return BagsClient(
        api_key=config.api.bags_api_key,
        base_url=config.api.base_url,
        timeout=config.api.timeout_seconds,
        recent_events_limit=config.api.recent_events_limit,
    )
