"""Tests for feecheck/analyzer.py — normalization and verdict engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from feecheck.analyzer import (
    ACTIVITY_RULES,
    PATTERN_RULES,
    VERDICT_RULES,
    FeeMetrics,
    activity_status,
    analyze_token,
    classify_pattern,
    classify_verdict,
    compute_claimed_pct,
    compute_share_pcts,
    count_valid_claims,
    find_last_claim,
    first_match,
    merge_claimers,
    sort_by_royalty,
)
from feecheck.models import ClaimerInfo, ClaimEvent, RawTokenData
from tests.conftest import CREATOR_WALLET, NOW, NOW_TS, PARTNER_WALLET


def make_claimer(
    wallet: str,
    royalty_bps: int = 0,
    is_creator: bool = False,
    total_claimed: str = "0",
) -> ClaimerInfo:
    return ClaimerInfo(
        wallet=wallet,
        royalty_bps=royalty_bps,
        is_creator=is_creator,
        total_claimed=total_claimed,
    )


def make_event(timestamp) -> ClaimEvent:
    return ClaimEvent.from_api({"wallet": "w", "amount": "1", "signature": "s", "timestamp": timestamp})


def make_raw(
    lifetime_fees: str = "10000000000",
    creators: list[ClaimerInfo] | None = None,
    claim_stats: list[ClaimerInfo] | None = None,
    events_24h: list[ClaimEvent] | None = None,
    events_recent: list[ClaimEvent] | None = None,
) -> RawTokenData:
    return RawTokenData(
        lifetime_fees=lifetime_fees,
        claim_stats=claim_stats or [],
        claim_events_24h=events_24h or [],
        claim_events_recent=events_recent or [],
        creators=creators or [],
    )


def make_metrics(**overrides) -> FeeMetrics:
    values = dict(
        lifetime_fees_sol=10.0,
        claimed_pct=50.0,
        creator_share_pct=20.0,
        top1_claimer_pct=20.0,
        top5_claimer_pct=60.0,
        total_claimers=10,
    )
    values.update(overrides)
    return FeeMetrics(**values)


# ── merge_claimers ────────────────────────────────────────────────────────────


def test_merge_uses_creators_as_driving_side() -> None:
    """Stats-only wallets are not claimers."""
    creators = [make_claimer("A", 5000, True)]
    stats = [make_claimer("A", total_claimed="100"), make_claimer("B", total_claimed="999")]
    merged = merge_claimers(creators, stats)
    assert [c.wallet for c in merged] == ["A"]
    assert merged[0].total_claimed == "100"


def test_merge_drops_zero_royalty_creators() -> None:
    creators = [make_claimer("A", 0, True), make_claimer("B", 2500)]
    merged = merge_claimers(creators, [make_claimer("A", total_claimed="500")])
    assert [c.wallet for c in merged] == ["B"]


def test_merge_defaults_total_claimed_to_zero() -> None:
    merged = merge_claimers([make_claimer("A", 10000)], [])
    assert merged[0].total_claimed == "0"


def test_merge_empty_stats_amount_becomes_zero() -> None:
    merged = merge_claimers([make_claimer("A", 10000)], [make_claimer("A", total_claimed="")])
    assert merged[0].total_claimed == "0"


def test_merge_keeps_config_fields_over_stats() -> None:
    """royalty_bps and is_creator come from config even if stats disagree."""
    creators = [make_claimer("A", 3000, is_creator=False)]
    stats = [make_claimer("A", 9000, is_creator=True, total_claimed="42")]
    merged = merge_claimers(creators, stats)
    assert merged[0].royalty_bps == 3000
    assert merged[0].is_creator is False
    assert merged[0].total_claimed == "42"


def test_merge_deduplicates_wallets() -> None:
    creators = [make_claimer("A", 3000), make_claimer("A", 7000), make_claimer("B", 1000)]
    merged = merge_claimers(creators, [])
    assert [c.wallet for c in merged] == ["A", "B"]
    assert merged[0].royalty_bps == 3000


def test_merge_direction_matters() -> None:
    """Swapping the arguments changes who counts as a claimer."""
    config = [make_claimer("A", 5000)]
    stats = [make_claimer("A", 0, total_claimed="10"), make_claimer("B", 4000, total_claimed="20")]
    assert [c.wallet for c in merge_claimers(config, stats)] == ["A"]
    assert [c.wallet for c in merge_claimers(stats, config)] == ["B"]


def test_sort_by_royalty_is_stable() -> None:
    claimers = [make_claimer("A", 1000), make_claimer("B", 5000), make_claimer("C", 1000)]
    assert [c.wallet for c in sort_by_royalty(claimers)] == ["B", "A", "C"]


# ── Fee and share math ────────────────────────────────────────────────────────


def test_claimed_pct_zero_lifetime_fees() -> None:
    assert compute_claimed_pct(0.0, [make_claimer("A", 100, total_claimed="5")]) == 0.0


def test_claimed_pct_ignores_malformed_amounts() -> None:
    claimers = [
        make_claimer("A", 100, total_claimed="1000000000"),
        make_claimer("B", 100, total_claimed="not-a-number"),
    ]
    assert compute_claimed_pct(2.0, claimers) == pytest.approx(50.0)


def test_share_pcts_zero_total_bps() -> None:
    assert compute_share_pcts([]) == (0.0, 0.0, 0.0)


def test_share_pcts_top5_only_counts_first_five() -> None:
    claimers = sort_by_royalty([make_claimer(str(i), 1000) for i in range(10)])
    creator, top1, top5 = compute_share_pcts(claimers)
    assert creator == 0.0
    assert top1 == pytest.approx(10.0)
    assert top5 == pytest.approx(50.0)


def test_share_pcts_creator_share() -> None:
    claimers = sort_by_royalty([make_claimer("A", 7500, True), make_claimer("B", 2500)])
    creator, top1, top5 = compute_share_pcts(claimers)
    assert creator == pytest.approx(75.0)
    assert top1 == pytest.approx(75.0)
    assert top5 == pytest.approx(100.0)


# ── Activity ──────────────────────────────────────────────────────────────────


def test_count_valid_claims_mixed_formats() -> None:
    events = [
        make_event(NOW_TS - 60),
        make_event("2026-02-22T08:30:00Z"),
        make_event("2026-02-22T09:00:00+02:00"),
        make_event(0),
        make_event(-5),
        make_event(""),
        make_event("not a date"),
        make_event(None),
        make_event(1580000000),  # 2020-01-26T00:53:20Z
    ]
    assert count_valid_claims(events) == 4


def test_count_valid_claims_excludes_pre_2020() -> None:
    events = [make_event(1570000000), make_event("2019-12-31T23:59:59Z")]
    assert count_valid_claims(events) == 0


def test_count_valid_claims_includes_cutoff_instant() -> None:
    assert count_valid_claims([make_event("2020-01-01T00:00:00Z")]) == 1


def test_find_last_claim_returns_first_valid_in_order() -> None:
    events = [
        make_event(None),
        make_event("garbage"),
        make_event(NOW_TS - 7200),
        make_event(NOW_TS - 60),  # newer, but later in the list
    ]
    assert find_last_claim(events, NOW) == datetime.fromtimestamp(NOW_TS - 7200, tz=timezone.utc)


def test_find_last_claim_skips_far_future() -> None:
    future = NOW + timedelta(hours=30)
    events = [make_event(future.isoformat()), make_event(NOW_TS - 100)]
    assert find_last_claim(events, NOW) == datetime.fromtimestamp(NOW_TS - 100, tz=timezone.utc)


def test_find_last_claim_tolerates_small_skew() -> None:
    skewed = NOW + timedelta(hours=2)
    assert find_last_claim([make_event(skewed.isoformat())], NOW) == skewed


def test_find_last_claim_cutoff_is_exclusive() -> None:
    assert find_last_claim([make_event("2020-01-01T00:00:00Z")], NOW) is None


def test_find_last_claim_empty() -> None:
    assert find_last_claim([], NOW) is None


@pytest.mark.parametrize(
    "count, hours_ago, expected",
    [
        (0, None, "Dead"),
        (7, None, "Dead"),
        (5, 1, "Active"),
        (1, 100, "Quiet"),
        (0, 10, "Quiet"),
        (0, 47.9, "Quiet"),
        (0, 48, "Dead"),
        (0, 72, "Dead"),
    ],
)
def test_activity_status_ladder(count: int, hours_ago: float | None, expected: str) -> None:
    last = None if hours_ago is None else NOW - timedelta(hours=hours_ago)
    assert activity_status(count, last, NOW) == expected


# ── Verdict ladder ────────────────────────────────────────────────────────────


def test_verdict_low_fees_wins_over_everything() -> None:
    v = classify_verdict(make_metrics(lifetime_fees_sol=0.05, top1_claimer_pct=100.0))
    assert v.verdict == "DORMANT"
    assert "0.05 SOL" in v.why


def test_verdict_no_claimers() -> None:
    v = classify_verdict(make_metrics(total_claimers=0, top1_claimer_pct=0.0, top5_claimer_pct=0.0))
    assert v.verdict == "DORMANT"
    assert v.why == "No claimers found"


def test_verdict_top1_threshold_is_strict() -> None:
    assert classify_verdict(make_metrics(top1_claimer_pct=50.0, top5_claimer_pct=70.0)).verdict == "HEALTHY"
    v = classify_verdict(make_metrics(top1_claimer_pct=50.1, top5_claimer_pct=70.0))
    assert v.verdict == "CENTRALIZED"
    assert "50.1%" in v.why


def test_verdict_top5() -> None:
    v = classify_verdict(make_metrics(top1_claimer_pct=30.0, top5_claimer_pct=85.25))
    assert v.verdict == "CENTRALIZED"
    assert v.why.startswith("Top 5 wallets")
    assert "85.2%" in v.why or "85.3%" in v.why


def test_verdict_healthy_cites_both() -> None:
    v = classify_verdict(make_metrics(top1_claimer_pct=12.34, top5_claimer_pct=55.55))
    assert v.verdict == "HEALTHY"
    assert v.why == "Top 1 wallet: 12.3%, Top 5: 55.5%" or v.why == "Top 1 wallet: 12.3%, Top 5: 55.6%"


def test_verdict_rules_end_with_catch_all() -> None:
    assert VERDICT_RULES[-1].predicate(make_metrics())
    assert PATTERN_RULES[-1].predicate(make_metrics(), "HEALTHY")
    assert ACTIVITY_RULES[-1].predicate(0, 1000.0)


# ── Pattern ladder ────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "overrides, verdict, expected",
    [
        ({"claimed_pct": 10.0}, "HEALTHY", "Abandoned fees"),
        ({"claimed_pct": 10.0, "total_claimers": 0}, "DORMANT", "Abandoned fees"),
        ({"top1_claimer_pct": 75.0}, "CENTRALIZED", "Single-extractor"),
        ({"creator_share_pct": 65.0}, "HEALTHY", "Creator-heavy"),
        ({"total_claimers": 5, "top1_claimer_pct": 39.9}, "HEALTHY", "Broad distribution"),
        ({"total_claimers": 3, "top1_claimer_pct": 45.0}, "HEALTHY", "Multi-claimer balance"),
        ({"total_claimers": 1, "top1_claimer_pct": 60.0}, "CENTRALIZED", "Creator-heavy"),
        ({"total_claimers": 0, "top1_claimer_pct": 0.0}, "DORMANT", "Abandoned fees"),
    ],
)
def test_pattern_ladder(overrides: dict, verdict: str, expected: str) -> None:
    assert classify_pattern(make_metrics(**overrides), verdict) == expected


def test_pattern_independent_of_verdict() -> None:
    """A HEALTHY token can be Creator-heavy."""
    m = make_metrics(creator_share_pct=61.0, top1_claimer_pct=40.0, top5_claimer_pct=79.0)
    assert classify_verdict(m).verdict == "HEALTHY"
    assert classify_pattern(m, "HEALTHY") == "Creator-heavy"


def test_first_match_calls_callable_results() -> None:
    from feecheck.analyzer import Rule

    rules = (Rule("a", lambda x: x > 1, lambda x: x * 10), Rule("b", lambda x: True, "const"))
    assert first_match(rules, 2) == 20
    assert first_match(rules, 0) == "const"


# ── analyze_token: scenarios ──────────────────────────────────────────────────


def test_scenario_low_fees_single_claimer() -> None:
    raw = make_raw(lifetime_fees="50000000", creators=[make_claimer("A", 10000, True)])
    a = analyze_token(raw, now=NOW)
    assert a.lifetime_fees_sol == pytest.approx(0.05)
    assert a.verdict == "DORMANT"
    assert a.pattern == "Abandoned fees"
    assert "0.05" in a.why


def test_scenario_single_extractor() -> None:
    raw = make_raw(
        lifetime_fees="5000000000",
        creators=[make_claimer("A", 10000, True)],
        claim_stats=[make_claimer("A", total_claimed="5000000000")],
    )
    a = analyze_token(raw, now=NOW)
    assert a.claimed_pct == pytest.approx(100.0)
    assert a.top1_claimer_pct == pytest.approx(100.0)
    assert a.verdict == "CENTRALIZED"
    assert a.pattern == "Single-extractor"
    assert "100.0%" in a.why


def test_scenario_five_even_claimers() -> None:
    """Five equal claimers: top5 covers everything, so the top-5 rule fires."""
    wallets = [f"W{i}" for i in range(5)]
    raw = make_raw(
        lifetime_fees="10000000000",
        creators=[make_claimer(w, 2000, is_creator=(i == 0)) for i, w in enumerate(wallets)],
        claim_stats=[make_claimer(w, total_claimed="2000000000") for w in wallets],
    )
    a = analyze_token(raw, now=NOW)
    assert a.top1_claimer_pct == pytest.approx(20.0)
    assert a.top5_claimer_pct == pytest.approx(100.0)
    assert a.claimed_pct == pytest.approx(100.0)
    assert a.verdict == "CENTRALIZED"
    assert a.why == "Top 5 wallets control 100.0% of fee royalties"
    assert a.pattern == "Broad distribution"


def test_scenario_ten_even_claimers_is_healthy() -> None:
    wallets = [f"W{i}" for i in range(10)]
    raw = make_raw(
        lifetime_fees="10000000000",
        creators=[make_claimer(w, 1000) for w in wallets],
        claim_stats=[make_claimer(w, total_claimed="1000000000") for w in wallets],
    )
    a = analyze_token(raw, now=NOW)
    assert a.verdict == "HEALTHY"
    assert a.why == "Top 1 wallet: 10.0%, Top 5: 50.0%"
    assert a.pattern == "Broad distribution"


def test_scenario_pre_2020_event_ignored() -> None:
    raw = make_raw(
        creators=[make_claimer("A", 10000)],
        events_24h=[make_event(1570000000)],
        events_recent=[make_event(1570000000)],
    )
    a = analyze_token(raw, now=NOW)
    assert a.claim_count_24h == 0
    assert a.last_claim_at is None
    assert a.activity_status == "Dead"


def test_scenario_no_creators() -> None:
    raw = make_raw(
        lifetime_fees="5000000000",
        claim_stats=[make_claimer("A", 10000, total_claimed="100")],
    )
    a = analyze_token(raw, now=NOW)
    assert a.total_claimers == 0
    assert a.claimers == ()
    assert a.verdict == "DORMANT"
    assert a.why == "No claimers found"
    assert a.pattern == "Abandoned fees"
    assert a.creator_share_pct == 0.0
    assert a.non_creator_share_pct == 100.0


def test_analyze_realistic_payload(raw_payload: dict) -> None:
    a = analyze_token(RawTokenData.from_dict(raw_payload), now=NOW)
    assert a.lifetime_fees_sol == pytest.approx(10.0)
    assert a.total_claimers == 2
    assert [c.wallet for c in a.claimers] == [CREATOR_WALLET, PARTNER_WALLET]
    assert a.claimed_pct == pytest.approx(40.0)
    assert a.unclaimed_pct == pytest.approx(60.0)
    assert a.creator_share_pct == pytest.approx(60.0)
    assert a.top1_claimer_pct == pytest.approx(60.0)
    assert a.verdict == "CENTRALIZED"
    assert a.pattern == "Creator-heavy"
    assert a.claim_count_24h == 2
    assert a.last_claim_at == datetime.fromtimestamp(NOW_TS - 3600, tz=timezone.utc)
    assert a.activity_status == "Quiet"


def test_analyze_over_claimed_is_not_clamped() -> None:
    raw = make_raw(
        lifetime_fees="1000000000",
        creators=[make_claimer("A", 10000)],
        claim_stats=[make_claimer("A", total_claimed="1500000000")],
    )
    a = analyze_token(raw, now=NOW)
    assert a.claimed_pct == pytest.approx(150.0)
    assert a.unclaimed_pct == pytest.approx(-50.0)


def test_analyze_malformed_lifetime_fees_is_dormant() -> None:
    raw = make_raw(lifetime_fees="n/a", creators=[make_claimer("A", 10000)])
    a = analyze_token(raw, now=NOW)
    assert a.lifetime_fees_sol == 0.0
    assert a.claimed_pct == 0.0
    assert a.verdict == "DORMANT"


def test_analyze_active_token() -> None:
    raw = make_raw(
        creators=[make_claimer("A", 10000)],
        events_24h=[make_event(NOW_TS - i * 600) for i in range(6)],
        events_recent=[make_event(NOW_TS - 600)],
    )
    assert analyze_token(raw, now=NOW).activity_status == "Active"


def test_analyze_uses_recent_list_for_last_claim() -> None:
    """24h events never feed last_claim_at."""
    raw = make_raw(
        creators=[make_claimer("A", 10000)],
        events_24h=[make_event(NOW_TS - 60)],
        events_recent=[],
    )
    a = analyze_token(raw, now=NOW)
    assert a.claim_count_24h == 1
    assert a.last_claim_at is None
    assert a.activity_status == "Dead"


# ── Invariants ────────────────────────────────────────────────────────────────


INVARIANT_CASES = [
    make_raw(),
    make_raw(lifetime_fees="0", creators=[make_claimer("A", 100)]),
    make_raw(
        lifetime_fees="123456789",
        creators=[make_claimer(str(i), 100 * (i + 1), is_creator=i % 3 == 0) for i in range(8)],
        claim_stats=[make_claimer(str(i), total_claimed=str(i * 1000)) for i in range(12)],
    ),
    make_raw(
        creators=[make_claimer("A", 0), make_claimer("B", 1), make_claimer("B", 5)],
        claim_stats=[make_claimer("C", 9000, total_claimed="77")],
    ),
]


@pytest.mark.parametrize("raw", INVARIANT_CASES)
def test_invariants(raw: RawTokenData) -> None:
    a = analyze_token(raw, now=NOW)
    config_wallets = {c.wallet for c in raw.creators}

    wallets = [c.wallet for c in a.claimers]
    assert len(wallets) == len(set(wallets))
    assert all(c.royalty_bps > 0 for c in a.claimers)
    assert all(c.wallet in config_wallets for c in a.claimers)

    assert a.claimed_pct + a.unclaimed_pct == pytest.approx(100.0)
    assert a.creator_share_pct + a.non_creator_share_pct == pytest.approx(100.0)
    assert a.top1_claimer_pct <= a.top5_claimer_pct
    assert [c.royalty_bps for c in a.claimers] == sorted(
        (c.royalty_bps for c in a.claimers), reverse=True
    )


def test_merge_is_idempotent_on_own_output(raw_payload: dict) -> None:
    """Feeding the claimer list back as both sources reproduces the snapshot."""
    first = analyze_token(RawTokenData.from_dict(raw_payload), now=NOW)
    claimers = list(first.claimers)
    again = analyze_token(
        RawTokenData(
            lifetime_fees=RawTokenData.from_dict(raw_payload).lifetime_fees,
            claim_stats=claimers,
            creators=claimers,
        ),
        now=NOW,
    )
    assert again.claimers == first.claimers
    assert again.claimed_pct == first.claimed_pct
    assert again.creator_share_pct == first.creator_share_pct
    assert again.top1_claimer_pct == first.top1_claimer_pct
    assert again.top5_claimer_pct == first.top5_claimer_pct
    assert again.verdict == first.verdict
    assert again.pattern == first.pattern


def test_analyze_is_deterministic(raw_payload: dict) -> None:
    raw = RawTokenData.from_dict(raw_payload)
    assert analyze_token(raw, now=NOW) == analyze_token(raw, now=NOW)


def test_naive_now_is_taken_as_utc(raw_payload: dict) -> None:
    raw = RawTokenData.from_dict(raw_payload)
    naive = analyze_token(raw, now=NOW.replace(tzinfo=None))
    assert naive == analyze_token(raw, now=NOW)
    assert naive.activity_status == "Quiet"


def test_naive_now_with_naive_claim_strings() -> None:
    raw = make_raw(
        lifetime_fees="1000000000",
        creators=[make_claimer(CREATOR_WALLET, 10000, True)],
        events_recent=[make_event("2023-12-31 23:00:00")],
    )
    a = analyze_token(raw, now=datetime(2024, 1, 1))
    assert a.last_claim_at == datetime(2023, 12, 31, 23, tzinfo=timezone.utc)
    assert a.activity_status == "Quiet"


def test_concentration_text_names_royalty_shares() -> None:
    raw = make_raw(
        lifetime_fees="5000000000",
        creators=[make_claimer(CREATOR_WALLET, 10000, True, "0")],
    )
    a = analyze_token(raw, now=NOW)
    assert a.summary.startswith("Single wallet controls 100.0% of fee royalties.")
    assert a.why == "Top 1 wallet controls 100.0% of fee royalties"
