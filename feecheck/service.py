"""Request orchestration for a single token check.

rate limit → validate mint → fetch (all five collections) → analyze.

The service owns no state beyond what is injected: the data source and
the optional rate limiter.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from feecheck.analyzer import analyze_token
from feecheck.exceptions import InvalidMintError, ThrottledError
from feecheck.fetchers import TokenDataSource
from feecheck.models import TokenAnalysis
from feecheck.ratelimit import RateLimiter
from feecheck.validation import is_valid_token_mint

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TokenChecker:
    """Runs the full check pipeline for one mint at a time."""

    def __init__(
        self,
        source: TokenDataSource,
        limiter: RateLimiter | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._limiter = limiter
        self._clock = clock

    async def check(self, token_mint: str, client_key: str = "local") -> TokenAnalysis:
        """
        Analyze `token_mint` on behalf of `client_key`.

        Raises:
            ThrottledError: client_key is over its request budget.
            InvalidMintError: mint is not a Base58 address; nothing is fetched.
            FeecheckError: any fetch failure from the data source.
        """
        if self._limiter is not None and not self._limiter.hit(client_key):
            retry_after = self._limiter.retry_after(client_key)
            logger.info("Throttled client %s (retry in %ss)", client_key, retry_after)
            raise ThrottledError(
                "Too many requests. Please wait a moment and try again.",
                retry_after=retry_after,
            )

        if not is_valid_token_mint(token_mint):
            logger.info("Rejected malformed mint %r", token_mint)
            raise InvalidMintError(
                "Invalid Solana token mint", details={"token_mint": token_mint}
            )

        mint = token_mint.strip()
        raw = await self._source.fetch_all_token_data(mint)
        analysis = analyze_token(raw, now=self._clock())
        logger.debug("Analyzed %s: verdict=%s pattern=%s", mint, analysis.verdict, analysis.pattern)
        return analysis
