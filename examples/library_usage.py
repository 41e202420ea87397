"""Using feecheck as a library.

Builds a TokenChecker with a shared request budget and checks one mint
without going through the CLI.
"""

import asyncio
import sys

from feecheck.config import load_config
from feecheck.exceptions import FeecheckError
from feecheck.fetchers import get_source
from feecheck.ratelimit import InMemoryRateLimitStore, RateLimiter
from feecheck.service import TokenChecker


async def check(mint: str) -> None:
    config = load_config()
    limiter = RateLimiter(
        InMemoryRateLimitStore(),
        max_requests=config.rate_limit.max_requests,
        window_seconds=config.rate_limit.window_seconds,
    )

    async with get_source(config) as source:
        checker = TokenChecker(source, limiter=limiter)
        try:
            analysis = await checker.check(mint, client_key="example")
        except FeecheckError as e:
            print(f"{e.error_code}: {e.message}")
            return

    print(f"{analysis.verdict}: {analysis.summary}")
    print(f"  why:      {analysis.why}")
    print(f"  pattern:  {analysis.pattern}")
    print(f"  activity: {analysis.activity_status} ({analysis.claim_count_24h} claims in 24h)")
    for claimer in analysis.claimers[:5]:
        role = "creator" if claimer.is_creator else "recipient"
        print(f"  {claimer.wallet}  {claimer.royalty_bps / 100:.2f}%  {role}")


if __name__ == "__main__":
    asyncio.run(check(sys.argv[1] if len(sys.argv) > 1 else "So11111111111111111111111111111111111111112"))
