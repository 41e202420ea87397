"""
Bags API client.

Fetches the five collections a fee-distribution analysis needs:
lifetime fees, claim stats, claim events (24h window and most recent),
and the creator/fee-share configuration.

API base: https://public-api-v2.bags.fm/api/v1
Auth: `x-api-key` header.
Every response is wrapped in {"success": bool, "response": T | "error": str}.

Design decisions:
- Uses async httpx for all HTTP calls.
- The five calls run concurrently; the first failure cancels the rest
  and propagates (no partial snapshots).
- Each call is bounded by a single timeout and never retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from feecheck.config import DEFAULT_BASE_URL
from feecheck.exceptions import (
    APIKeyMissingError,
    ConnectionFailedError,
    InvalidAPIKeyError,
    NetworkTimeoutError,
    RateLimitError,
    UpstreamRejectedError,
)
from feecheck.models import RawTokenData

logger = logging.getLogger(__name__)

LIFETIME_FEES_PATH = "/token-launch/lifetime-fees"
CLAIM_STATS_PATH = "/token-launch/claim-stats"
CLAIM_EVENTS_PATH = "/fee-share/token/claim-events"
CREATORS_PATH = "/token-launch/creator/v3"

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RECENT_EVENTS_LIMIT = 100
ACTIVITY_WINDOW_SECONDS = 24 * 60 * 60


class BagsClient:
    """
    Async Bags public API client.

    Usable as an async context manager; otherwise call `close()`.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        recent_events_limit: int = DEFAULT_RECENT_EVENTS_LIMIT,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._recent_events_limit = recent_events_limit
        self._client = httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> BagsClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ── Endpoints ────────────────────────────────────────────────────────────

    async def get_lifetime_fees(self, token_mint: str) -> str:
        """Lifetime fees in lamports, as a decimal string."""
        return await self._request(LIFETIME_FEES_PATH, {"tokenMint": token_mint})

    async def get_claim_stats(self, token_mint: str) -> list[dict[str, Any]]:
        return await self._request(CLAIM_STATS_PATH, {"tokenMint": token_mint})

    async def get_claim_events(
        self, token_mint: str, limit: int | None = None
    ) -> dict[str, Any]:
        """Most recent claim events (typically newest first)."""
        params = {"tokenMint": token_mint}
        if limit:
            params["limit"] = str(limit)
        return await self._request(CLAIM_EVENTS_PATH, params)

    async def get_claim_events_time_range(
        self, token_mint: str, from_ts: int, to_ts: int
    ) -> dict[str, Any]:
        """Claim events with from_ts <= timestamp <= to_ts (unix seconds)."""
        return await self._request(
            CLAIM_EVENTS_PATH,
            {
                "tokenMint": token_mint,
                "mode": "time",
                "from": str(from_ts),
                "to": str(to_ts),
            },
        )

    async def get_creators(self, token_mint: str) -> list[dict[str, Any]]:
        """Fee-share configuration: who earns royalties and how many bps."""
        return await self._request(CREATORS_PATH, {"tokenMint": token_mint})

    async def fetch_all_token_data(self, token_mint: str) -> RawTokenData:
        """
        Fetch all five collections concurrently.

        Raises:
            Whatever the first failing call raises; the other calls are
            cancelled.
        """
        now_ts = int(time.time())
        tasks = [
            asyncio.create_task(self.get_lifetime_fees(token_mint)),
            asyncio.create_task(self.get_claim_stats(token_mint)),
            asyncio.create_task(
                self.get_claim_events_time_range(
                    token_mint, now_ts - ACTIVITY_WINDOW_SECONDS, now_ts
                )
            ),
            asyncio.create_task(self.get_claim_events(token_mint, self._recent_events_limit)),
            asyncio.create_task(self.get_creators(token_mint)),
        ]
        try:
            lifetime_fees, claim_stats, events_24h, events_recent, creators = (
                await asyncio.gather(*tasks)
            )
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return RawTokenData.from_api(
            lifetime_fees=lifetime_fees,
            claim_stats=claim_stats,
            claim_events_24h=events_24h,
            claim_events_recent=events_recent,
            creators=creators,
        )

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _request(self, path: str, params: dict[str, str]) -> Any:
        """GET `path` and unwrap the Bags response envelope."""
        if not self._api_key:
            raise APIKeyMissingError(
                "Bags API key not configured. Set BAGS_API_KEY or api.bags_api_key."
            )

        url = f"{self._base_url}{path}"
        logger.debug("GET %s params=%s", path, params)
        try:
            resp = await self._client.get(
                url, params=params, headers={"x-api-key": self._api_key}
            )
        except httpx.TimeoutException as e:
            logger.warning("Bags API timeout on %s", path)
            raise NetworkTimeoutError(
                "Request timeout: the Bags API took too long to respond.",
                details={"path": path},
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Cannot connect to Bags API: %s", e)
            raise ConnectionFailedError(f"Cannot connect to Bags API: {e}") from e
        except httpx.TransportError as e:
            logger.warning("Bags API transport error on %s: %s", path, e)
            raise ConnectionFailedError(
                f"Connection to Bags API failed: {e}", details={"path": path}
            ) from e

        if resp.status_code == 429:
            retry_after = _parse_retry_after(resp.headers.get("retry-after"))
            raise RateLimitError("Bags API rate limit exceeded", retry_after=retry_after)
        if resp.status_code in (401, 403):
            raise InvalidAPIKeyError(
                "Bags API key was rejected", details={"status_code": resp.status_code}
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamRejectedError(
                f"Bags API error ({resp.status_code}): response is not JSON",
                status_code=resp.status_code,
            ) from e

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning("Bags API rejected %s (%s): %s", path, resp.status_code, message)
            raise UpstreamRejectedError(
                f"Bags API error ({resp.status_code}): {message or 'Unknown API error'}",
                status_code=resp.status_code,
            )

        return data.get("response")


def _parse_retry_after(value: str | None) -> int:
    try:
        return max(0, int(value)) if value is not None else 60
    except ValueError:
        return 60
