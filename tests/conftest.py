"""Pytest fixtures shared across all feecheck tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from feecheck.config import (
    APIConfig,
    FeecheckConfig,
    LoggingConfig,
    OutputConfig,
    RateLimitConfig,
)

# ── Constants ─────────────────────────────────────────────────────────────────

WSOL_MINT = "So11111111111111111111111111111111111111112"          # 43 chars
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"         # 44 chars
CREATOR_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
PARTNER_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"

NOW = datetime(2026, 2, 22, 12, 0, 0, tzinfo=timezone.utc)
NOW_TS = int(NOW.timestamp())


# ── Config fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def sample_config() -> FeecheckConfig:
    """Minimal valid FeecheckConfig for tests."""
    return FeecheckConfig(
        api=APIConfig(
            bags_api_key="test_bags_key_12345",
            base_url="https://public-api-v2.bags.fm/api/v1",
            timeout_seconds=5.0,
            recent_events_limit=100,
        ),
        rate_limit=RateLimitConfig(max_requests=10, window_seconds=60),
        output=OutputConfig(default_format="json", color=False),
        logging=LoggingConfig(level="WARNING", format="text"),
    )


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip feecheck-related environment variables."""
    for var in (
        "BAGS_API_KEY",
        "FEECHECK_BAGS_API_KEY",
        "FEECHECK_BASE_URL",
        "FEECHECK_TIMEOUT_SECONDS",
        "FEECHECK_RECENT_EVENTS_LIMIT",
        "FEECHECK_RATE_LIMIT_MAX_REQUESTS",
        "FEECHECK_RATE_LIMIT_WINDOW_SECONDS",
        "FEECHECK_OUTPUT_FORMAT",
        "FEECHECK_LOG_LEVEL",
        "FEECHECK_LOG_FORMAT",
        "FEECHECK_NO_COLOR",
        "FEECHECK_CONFIG_PATH",
    ):
        monkeypatch.delenv(var, raising=False)


# ── Raw payload fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def raw_payload() -> dict:
    """
    Realistic raw payload in upstream (camelCase) shape.

    Creator 6000 bps (claimed 3 SOL), partner 4000 bps (claimed 1 SOL),
    one stats-only wallet that must be ignored. Lifetime fees 10 SOL.
    """
    return {
        "lifetimeFees": "10000000000",
        "claimStats": [
            {
                "wallet": CREATOR_WALLET,
                "royaltyBps": 6000,
                "isCreator": True,
                "totalClaimed": "3000000000",
                "username": "alice",
                "provider": "twitter",
                "providerUsername": "alice_onchain",
            },
            {
                "wallet": PARTNER_WALLET,
                "royaltyBps": 4000,
                "isCreator": False,
                "totalClaimed": "1000000000",
            },
            {
                "wallet": "StaLeWaLLet111111111111111111111111111111111",
                "royaltyBps": 0,
                "isCreator": False,
                "totalClaimed": "9000000000",
            },
        ],
        "claimEvents24h": {
            "events": [
                {"wallet": CREATOR_WALLET, "amount": "1000000", "signature": "sig1",
                 "timestamp": NOW_TS - 3600},
                {"wallet": PARTNER_WALLET, "amount": "1000000", "signature": "sig2",
                 "timestamp": "2026-02-22T02:00:00Z"},
            ]
        },
        "claimEventsRecent": {
            "events": [
                {"wallet": CREATOR_WALLET, "amount": "1000000", "signature": "sig1",
                 "timestamp": NOW_TS - 3600},
                {"wallet": PARTNER_WALLET, "amount": "1000000", "signature": "sig0",
                 "timestamp": NOW_TS - 86400 * 3},
            ]
        },
        "creators": [
            {
                "wallet": CREATOR_WALLET,
                "royaltyBps": 6000,
                "isCreator": True,
                "username": "alice",
                "provider": "twitter",
                "providerUsername": "alice_onchain",
            },
            {"wallet": PARTNER_WALLET, "royaltyBps": 4000, "isCreator": False},
        ],
    }
