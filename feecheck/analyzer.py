"""Fee-distribution analysis engine.

Turns the five raw Bags collections into one TokenAnalysis snapshot:

  1. Merge claimers      — creator config LEFT JOIN claim stats, by wallet
  2. Fee conversion      — lamport strings → SOL
  3. Claimed / unclaimed — share of lifetime fees already withdrawn
  4. Configured shares   — creator vs non-creator, top-1 / top-5 (by bps)
  5. Activity            — 24h claim count, most recent valid claim
  6. Activity status     — Active / Quiet / Dead ladder
  7. Verdict             — HEALTHY / CENTRALIZED / DORMANT ladder
  8. Pattern             — distribution-shape ladder

The ladders are ordered lists of Rule(name, predicate, result); the first
matching rule wins. Verdict and pattern ladders are evaluated independently,
so a HEALTHY token can still be labelled "Creator-heavy".

All functions are pure — no I/O, no side effects. The only clock read is
`now`, captured once per analysis.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

from feecheck.models import (
    ABANDONED_FEES,
    ACTIVE,
    BROAD_DISTRIBUTION,
    CENTRALIZED,
    CREATOR_HEAVY,
    DEAD,
    DORMANT,
    HEALTHY,
    MULTI_CLAIMER_BALANCE,
    QUIET,
    SINGLE_EXTRACTOR,
    ClaimerInfo,
    ClaimEvent,
    RawTokenData,
    TokenAnalysis,
)
from feecheck.normalize import lamports_to_sol, parse_lamports

# ── Thresholds ────────────────────────────────────────────────────────────────
DORMANT_FEE_THRESHOLD_SOL = 0.1
CENTRALIZED_TOP1_THRESHOLD = 50.0
CENTRALIZED_TOP5_THRESHOLD = 80.0

ACTIVE_MIN_CLAIMS_24H = 5
QUIET_MAX_HOURS_SINCE_CLAIM = 48

TOP_N = 5

# Anything before this is upstream garbage
MIN_VALID_TIMESTAMP = datetime(2020, 1, 1, tzinfo=timezone.utc)
# Tolerated upstream clock skew for the last-claim instant
MAX_CLOCK_SKEW = timedelta(hours=24)


# ── Rule ladders ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Rule:
    """One rung of a classification ladder."""

    name: str
    predicate: Callable[..., bool]
    result: Any     # a value, or a callable taking the ladder's arguments


def first_match(rules: Sequence[Rule], *args: Any) -> Any:
    """Evaluate `rules` top to bottom and return the first match's result."""
    for rule in rules:
        if rule.predicate(*args):
            return rule.result(*args) if callable(rule.result) else rule.result
    raise LookupError("no rule matched")  # pragma: no cover


@dataclass(frozen=True)
class FeeMetrics:
    """Intermediate numbers the verdict and pattern ladders read."""

    lifetime_fees_sol: float
    claimed_pct: float
    creator_share_pct: float
    top1_claimer_pct: float
    top5_claimer_pct: float
    total_claimers: int


@dataclass(frozen=True)
class Verdict:
    verdict: str
    summary: str
    why: str


def _dormant_low_fees(m: FeeMetrics) -> Verdict:
    return Verdict(
        DORMANT,
        "Minimal fee activity. Token has not generated meaningful revenue.",
        f"Lifetime fees ({m.lifetime_fees_sol:.2f} SOL) below threshold",
    )


def _dormant_no_claimers(m: FeeMetrics) -> Verdict:
    return Verdict(
        DORMANT,
        "Minimal fee activity. Token has not generated meaningful revenue.",
        "No claimers found",
    )


def _centralized_top1(m: FeeMetrics) -> Verdict:
    pct = m.top1_claimer_pct
    return Verdict(
        CENTRALIZED,
        f"Single wallet controls {pct:.1f}% of fee royalties. Highly concentrated distribution.",
        f"Top 1 wallet controls {pct:.1f}% of fee royalties",
    )


def _centralized_top5(m: FeeMetrics) -> Verdict:
    pct = m.top5_claimer_pct
    return Verdict(
        CENTRALIZED,
        f"Top 5 wallets control {pct:.1f}% of fee royalties. Distribution is heavily concentrated.",
        f"Top 5 wallets control {pct:.1f}% of fee royalties",
    )


def _healthy(m: FeeMetrics) -> Verdict:
    return Verdict(
        HEALTHY,
        "Fees are well distributed across multiple claimers. No single wallet dominates.",
        f"Top 1 wallet: {m.top1_claimer_pct:.1f}%, Top 5: {m.top5_claimer_pct:.1f}%",
    )


VERDICT_RULES: tuple[Rule, ...] = (
    Rule("low_fees", lambda m: m.lifetime_fees_sol < DORMANT_FEE_THRESHOLD_SOL, _dormant_low_fees),
    Rule("no_claimers", lambda m: m.total_claimers == 0, _dormant_no_claimers),
    Rule("top1", lambda m: m.top1_claimer_pct > CENTRALIZED_TOP1_THRESHOLD, _centralized_top1),
    Rule("top5", lambda m: m.top5_claimer_pct > CENTRALIZED_TOP5_THRESHOLD, _centralized_top5),
    Rule("healthy", lambda m: True, _healthy),
)

# Pattern predicates take (metrics, verdict); only the fallback reads verdict.
PATTERN_RULES: tuple[Rule, ...] = (
    Rule("abandoned", lambda m, v: m.claimed_pct < 30 and m.total_claimers > 0, ABANDONED_FEES),
    Rule("single_extractor", lambda m, v: m.top1_claimer_pct > 70, SINGLE_EXTRACTOR),
    Rule("creator_heavy", lambda m, v: m.creator_share_pct > 60, CREATOR_HEAVY),
    Rule(
        "broad",
        lambda m, v: m.total_claimers >= 5 and m.top1_claimer_pct < 40,
        BROAD_DISTRIBUTION,
    ),
    Rule(
        "multi_claimer",
        lambda m, v: m.total_claimers >= 2 and m.top1_claimer_pct < 60,
        MULTI_CLAIMER_BALANCE,
    ),
    Rule("dormant_fallback", lambda m, v: v == DORMANT, ABANDONED_FEES),
    Rule("fallback", lambda m, v: True, CREATOR_HEAVY),
)

# Activity predicates take (claim_count_24h, hours_since_last_claim | None).
ACTIVITY_RULES: tuple[Rule, ...] = (
    Rule("never_claimed", lambda n, h: h is None, DEAD),
    Rule("busy", lambda n, h: n >= ACTIVE_MIN_CLAIMS_24H, ACTIVE),
    Rule("recent", lambda n, h: n >= 1 or h < QUIET_MAX_HOURS_SINCE_CLAIM, QUIET),
    Rule("stale", lambda n, h: True, DEAD),
)


# ── Step 1: merge ─────────────────────────────────────────────────────────────


def merge_claimers(
    creators: Sequence[ClaimerInfo],
    claim_stats: Sequence[ClaimerInfo],
) -> list[ClaimerInfo]:
    """
    Left-outer-join creator config with claim stats, keyed by wallet.

    Creator config decides who is a claimer (royalty_bps > 0); claim stats
    only supply total_claimed ("0" when the wallet has none). Stats-only
    wallets are dropped. Each wallet appears once, in config order.
    """
    stats_by_wallet = {s.wallet: s for s in claim_stats}

    merged: list[ClaimerInfo] = []
    seen: set[str] = set()
    for creator in creators:
        if creator.royalty_bps <= 0 or creator.wallet in seen:
            continue
        seen.add(creator.wallet)
        stat = stats_by_wallet.get(creator.wallet)
        total_claimed = stat.total_claimed if stat and stat.total_claimed else "0"
        merged.append(replace(creator, total_claimed=total_claimed))
    return merged


def sort_by_royalty(claimers: Sequence[ClaimerInfo]) -> list[ClaimerInfo]:
    """Royalty descending; ties keep their original order."""
    return sorted(claimers, key=lambda c: c.royalty_bps, reverse=True)


# ── Steps 2–4: fee and share math ─────────────────────────────────────────────


def compute_claimed_pct(lifetime_fees_sol: float, claimers: Sequence[ClaimerInfo]) -> float:
    """Percentage of lifetime fees already claimed. Malformed amounts count as 0."""
    if lifetime_fees_sol <= 0:
        return 0.0
    claimed_lamports = sum(parse_lamports(c.total_claimed) or 0 for c in claimers)
    return (lamports_to_sol(claimed_lamports) / lifetime_fees_sol) * 100


def compute_share_pcts(sorted_claimers: Sequence[ClaimerInfo]) -> tuple[float, float, float]:
    """
    Configured-royalty shares.

    Args:
        sorted_claimers: Claimers sorted royalty descending.

    Returns:
        (creator_share_pct, top1_claimer_pct, top5_claimer_pct); all 0.0
        when total royalty is zero.
    """
    total_bps = sum(c.royalty_bps for c in sorted_claimers)
    if total_bps <= 0:
        return 0.0, 0.0, 0.0

    creator_bps = sum(c.royalty_bps for c in sorted_claimers if c.is_creator)
    top1_bps = sorted_claimers[0].royalty_bps
    top5_bps = sum(c.royalty_bps for c in sorted_claimers[:TOP_N])

    return (
        creator_bps / total_bps * 100,
        top1_bps / total_bps * 100,
        top5_bps / total_bps * 100,
    )


# ── Step 5–6: activity ────────────────────────────────────────────────────────


def count_valid_claims(events: Sequence[ClaimEvent]) -> int:
    """Count events with a valid instant on or after 2020-01-01."""
    return sum(
        1 for e in events if e.occurred_at is not None and e.occurred_at >= MIN_VALID_TIMESTAMP
    )


def find_last_claim(events: Sequence[ClaimEvent], now: datetime) -> datetime | None:
    """
    First event, in given order, whose instant lies strictly between
    2020-01-01 and now + 24h. Events are expected newest-first.
    """
    upper = now + MAX_CLOCK_SKEW
    for e in events:
        if e.occurred_at is not None and MIN_VALID_TIMESTAMP < e.occurred_at < upper:
            return e.occurred_at
    return None


def activity_status(claim_count_24h: int, last_claim_at: datetime | None, now: datetime) -> str:
    hours_since = None
    if last_claim_at is not None:
        hours_since = (now - last_claim_at).total_seconds() / 3600
    return first_match(ACTIVITY_RULES, claim_count_24h, hours_since)


# ── Steps 7–8: classification ─────────────────────────────────────────────────


def classify_verdict(metrics: FeeMetrics) -> Verdict:
    return first_match(VERDICT_RULES, metrics)


def classify_pattern(metrics: FeeMetrics, verdict: str) -> str:
    return first_match(PATTERN_RULES, metrics, verdict)


# ── Entry point ───────────────────────────────────────────────────────────────


def analyze_token(raw: RawTokenData, now: datetime | None = None) -> TokenAnalysis:
    """
    Derive the fee-distribution snapshot for one token.

    Args:
        raw: The five upstream collections.
        now: Evaluation instant. Defaults to the current time; a naive
            value is taken as UTC.

    Returns:
        TokenAnalysis. Never raises for well-formed RawTokenData.
    """
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    claimers = sort_by_royalty(merge_claimers(raw.creators, raw.claim_stats))

    lifetime_fees_sol = lamports_to_sol(parse_lamports(raw.lifetime_fees) or 0)
    claimed_pct = compute_claimed_pct(lifetime_fees_sol, claimers)
    creator_share_pct, top1_pct, top5_pct = compute_share_pcts(claimers)

    claim_count_24h = count_valid_claims(raw.claim_events_24h)
    last_claim_at = find_last_claim(raw.claim_events_recent, now)

    metrics = FeeMetrics(
        lifetime_fees_sol=lifetime_fees_sol,
        claimed_pct=claimed_pct,
        creator_share_pct=creator_share_pct,
        top1_claimer_pct=top1_pct,
        top5_claimer_pct=top5_pct,
        total_claimers=len(claimers),
    )
    verdict = classify_verdict(metrics)

    return TokenAnalysis(
        lifetime_fees_sol=lifetime_fees_sol,
        claimed_pct=claimed_pct,
        unclaimed_pct=100 - claimed_pct,
        creator_share_pct=creator_share_pct,
        non_creator_share_pct=100 - creator_share_pct,
        top1_claimer_pct=top1_pct,
        top5_claimer_pct=top5_pct,
        claim_count_24h=claim_count_24h,
        total_claimers=len(claimers),
        last_claim_at=last_claim_at,
        activity_status=activity_status(claim_count_24h, last_claim_at, now),
        claimers=tuple(claimers),
        verdict=verdict.verdict,
        summary=verdict.summary,
        why=verdict.why,
        pattern=classify_pattern(metrics, verdict.verdict),
    )
