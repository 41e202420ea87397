"""
Shared data models for feecheck.

These dataclasses are the canonical data shapes used across all modules:
the Bags fetcher produces RawTokenData, the analyzer consumes it and
produces TokenAnalysis, output renders that.

Parsing from upstream JSON happens here (the `from_api` constructors) so
the analyzer only ever sees normalized values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from feecheck.exceptions import DataError
from feecheck.normalize import RawTimestamp, normalize_timestamp

# Verdicts
HEALTHY = "HEALTHY"
CENTRALIZED = "CENTRALIZED"
DORMANT = "DORMANT"

# Distribution patterns
SINGLE_EXTRACTOR = "Single-extractor"
CREATOR_HEAVY = "Creator-heavy"
BROAD_DISTRIBUTION = "Broad distribution"
ABANDONED_FEES = "Abandoned fees"
MULTI_CLAIMER_BALANCE = "Multi-claimer balance"

# Activity statuses
ACTIVE = "Active"
QUIET = "Quiet"
DEAD = "Dead"


@dataclass(frozen=True)
class ClaimerInfo:
    """A wallet configured to receive a share of the token's fees."""

    wallet: str
    royalty_bps: int            # 0–10000, configured share
    is_creator: bool
    total_claimed: str = "0"    # lamports, decimal string
    username: str | None = None
    pfp: str | None = None
    provider: str | None = None     # "twitter" | "github" | "solana" | ...
    provider_username: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> ClaimerInfo | None:
        """Build from a creator/v3 or claim-stats record. None if no wallet."""
        wallet = raw.get("wallet")
        if not wallet or not isinstance(wallet, str):
            return None
        total_claimed = raw.get("totalClaimed")
        return cls(
            wallet=wallet,
            royalty_bps=_as_int(raw.get("royaltyBps")),
            is_creator=bool(raw.get("isCreator", False)),
            total_claimed=str(total_claimed) if total_claimed not in (None, "") else "0",
            username=raw.get("username"),
            pfp=raw.get("pfp"),
            provider=raw.get("provider"),
            provider_username=raw.get("providerUsername"),
        )

    def to_dict(self) -> dict:
        return {
            "wallet": self.wallet,
            "royalty_bps": self.royalty_bps,
            "is_creator": self.is_creator,
            "total_claimed": self.total_claimed,
            "username": self.username,
            "pfp": self.pfp,
            "provider": self.provider,
            "provider_username": self.provider_username,
        }


@dataclass(frozen=True)
class ClaimEvent:
    """A single fee withdrawal. Only used in aggregate."""

    timestamp: RawTimestamp             # as received: unix seconds or date string
    occurred_at: datetime | None        # normalized UTC instant; None if unparseable
    wallet: str = ""
    amount: str = "0"                   # lamports, decimal string
    signature: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> ClaimEvent:
        ts = raw.get("timestamp")
        return cls(
            timestamp=ts,
            occurred_at=normalize_timestamp(ts),
            wallet=raw.get("wallet") or "",
            amount=str(raw.get("amount") or "0"),
            signature=raw.get("signature") or "",
        )


@dataclass(frozen=True)
class RawTokenData:
    """The five upstream collections one analysis is computed from."""

    lifetime_fees: str                          # lamports, decimal string
    claim_stats: list[ClaimerInfo] = field(default_factory=list)
    claim_events_24h: list[ClaimEvent] = field(default_factory=list)
    claim_events_recent: list[ClaimEvent] = field(default_factory=list)
    creators: list[ClaimerInfo] = field(default_factory=list)

    @classmethod
    def from_api(
        cls,
        lifetime_fees: Any,
        claim_stats: list[dict[str, Any]] | None,
        claim_events_24h: Any,
        claim_events_recent: Any,
        creators: list[dict[str, Any]] | None,
    ) -> RawTokenData:
        """
        Build from raw Bags API responses.

        Event arguments may be the `{"events": [...]}` envelope or a bare list.

        Raises:
            DataError: lifetime fees missing (it is a required field).
        """
        if lifetime_fees is None or lifetime_fees == "":
            raise DataError("Upstream response is missing lifetime fees")

        return cls(
            lifetime_fees=str(lifetime_fees),
            claim_stats=_parse_claimers(claim_stats),
            claim_events_24h=_parse_events(claim_events_24h),
            claim_events_recent=_parse_events(claim_events_recent),
            creators=_parse_claimers(creators),
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> RawTokenData:
        """
        Build from a saved payload using the upstream camelCase keys:
        lifetimeFees, claimStats, claimEvents24h (or claimEvents),
        claimEventsRecent, creators.
        """
        if not isinstance(payload, dict):
            raise DataError("Raw token payload must be a JSON object")
        events_24h = payload.get("claimEvents24h", payload.get("claimEvents"))
        return cls.from_api(
            lifetime_fees=payload.get("lifetimeFees"),
            claim_stats=payload.get("claimStats"),
            claim_events_24h=events_24h,
            claim_events_recent=payload.get("claimEventsRecent"),
            creators=payload.get("creators"),
        )


@dataclass(frozen=True)
class TokenAnalysis:
    """
    Analytical snapshot of a token's fee distribution.

    Distribution percentages are weighted by configured royalty (bps), not
    by amounts claimed so far.
    """

    # Fee metrics
    lifetime_fees_sol: float
    claimed_pct: float
    unclaimed_pct: float            # 100 - claimed_pct, not clamped

    # Distribution
    creator_share_pct: float
    non_creator_share_pct: float
    top1_claimer_pct: float
    top5_claimer_pct: float

    # Activity
    claim_count_24h: int
    total_claimers: int
    last_claim_at: datetime | None
    activity_status: str            # "Active" | "Quiet" | "Dead"

    # Claimers, royalty descending
    claimers: tuple[ClaimerInfo, ...]

    # Verdict
    verdict: str                    # "HEALTHY" | "CENTRALIZED" | "DORMANT"
    summary: str
    why: str
    pattern: str

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "verdict": self.verdict,
            "summary": self.summary,
            "why": self.why,
            "pattern": self.pattern,
            "lifetime_fees_sol": self.lifetime_fees_sol,
            "claimed_pct": self.claimed_pct,
            "unclaimed_pct": self.unclaimed_pct,
            "creator_share_pct": self.creator_share_pct,
            "non_creator_share_pct": self.non_creator_share_pct,
            "top1_claimer_pct": self.top1_claimer_pct,
            "top5_claimer_pct": self.top5_claimer_pct,
            "claim_count_24h": self.claim_count_24h,
            "total_claimers": self.total_claimers,
            "last_claim_at": self.last_claim_at.isoformat() if self.last_claim_at else None,
            "activity_status": self.activity_status,
            "claimers": [c.to_dict() for c in self.claimers],
        }


# ──────────────────────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────────────────────


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _parse_claimers(records: list[dict[str, Any]] | None) -> list[ClaimerInfo]:
    out: list[ClaimerInfo] = []
    for raw in records or []:
        if not isinstance(raw, dict):
            continue
        claimer = ClaimerInfo.from_api(raw)
        if claimer:
            out.append(claimer)
    return out


def _parse_events(events: Any) -> list[ClaimEvent]:
    if isinstance(events, dict):
        events = events.get("events")
    return [ClaimEvent.from_api(e) for e in events or [] if isinstance(e, dict)]
