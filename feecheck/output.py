"""Output format routing for feecheck.

Converts result dicts to the requested format: json, table, csv.

Design rules:
- JSON: 2-space indent, deterministic key order, utf-8
- Table: Rich-formatted; green=HEALTHY, red=CENTRALIZED, yellow=DORMANT
- CSV: RFC 4180, one row per claimer, header row always present

All functions return strings. The caller writes to stdout.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from feecheck.normalize import lamports_to_sol, parse_lamports

VALID_FORMATS = {"json", "table", "csv"}


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal values."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def format_output(data: Any, fmt: str, now: datetime | None = None) -> str:
    """
    Format data for stdout output.

    Args:
        data: Result dict, list, or any JSON-serialisable value.
        fmt: "json" | "table" | "csv"
        now: Reference instant for relative times in tables.

    Returns:
        Formatted string ready to write to stdout.

    Raises:
        ValueError: If fmt is not a recognised format.
    """
    fmt = fmt.lower()
    if fmt not in VALID_FORMATS:
        raise ValueError(f"Unknown format {fmt!r}. Valid: {sorted(VALID_FORMATS)}")

    if fmt == "table":
        return format_table(data, now=now)
    elif fmt == "csv":
        return format_csv(data)
    return format_json(data)


# ── JSON ─────────────────────────────────────────────────────────────────────


def format_json(data: Any) -> str:
    """Pretty-print data as JSON (2-space indent)."""
    return json.dumps(data, indent=2, cls=DecimalEncoder, ensure_ascii=False)


# ── Table ────────────────────────────────────────────────────────────────────


def format_table(data: Any, now: datetime | None = None) -> str:
    """
    Format as Rich terminal output.

    Handles:
    - A single check result (dict with 'analysis')
    - A batch of check results (dict with 'results')
    - Generic dict fallback
    """
    buf = io.StringIO()
    console = Console(file=buf, highlight=False, markup=True, width=120)
    now = now or datetime.now(tz=timezone.utc)

    if isinstance(data, dict) and "analysis" in data:
        _render_result(console, data, now)
    elif isinstance(data, dict) and "results" in data:
        for entry in data["results"]:
            _render_result(console, entry, now)
    else:
        console.print_json(json.dumps(data, cls=DecimalEncoder))

    return buf.getvalue()


def _verdict_color(verdict: str) -> str:
    if verdict == "HEALTHY":
        return "green"
    elif verdict == "CENTRALIZED":
        return "red"
    return "yellow"


def _activity_color(status: str) -> str:
    if status == "Active":
        return "green"
    elif status == "Quiet":
        return "yellow"
    return "dim"


def _render_result(console: Console, entry: dict[str, Any], now: datetime) -> None:
    mint = entry.get("token_mint", "")
    if "error" in entry:
        err = entry["error"]
        console.print(f"[bold red]{mint}[/bold red]: {err.get('message', '')} ({err.get('error')})")
        return

    a = entry["analysis"]
    verdict = a.get("verdict", "")
    body = Text()
    body.append(f"{verdict}\n", style=f"bold {_verdict_color(verdict)}")
    body.append(f"{a.get('summary', '')}\n")
    body.append(f"Why: {a.get('why', '')}\n", style="italic")
    body.append(f"Pattern: {a.get('pattern', '')}")
    console.print(Panel(body, title=f"Fee check — {mint}", expand=False))

    metrics = Table(show_header=True, header_style="bold blue")
    metrics.add_column("Fees", justify="right")
    metrics.add_column("Distribution", justify="right")
    metrics.add_column("Activity", justify="right")
    metrics.add_row(
        f"Lifetime: {a.get('lifetime_fees_sol', 0.0):,.2f} SOL",
        f"Creator: {a.get('creator_share_pct', 0.0):.1f}%",
        Text(a.get("activity_status", ""), style=_activity_color(a.get("activity_status", ""))),
    )
    metrics.add_row(
        f"Claimed: {a.get('claimed_pct', 0.0):.1f}%",
        f"Non-creator: {a.get('non_creator_share_pct', 0.0):.1f}%",
        f"Claims 24h: {a.get('claim_count_24h', 0)}",
    )
    metrics.add_row(
        f"Unclaimed: {a.get('unclaimed_pct', 0.0):.1f}%",
        f"Top 1: {a.get('top1_claimer_pct', 0.0):.1f}%",
        f"Last claim: {relative_time(_parse_iso(a.get('last_claim_at')), now)}",
    )
    metrics.add_row(
        "",
        f"Top 5: {a.get('top5_claimer_pct', 0.0):.1f}%",
        f"Claimers: {a.get('total_claimers', 0)}",
    )
    console.print(metrics)

    claimers = a.get("claimers") or []
    if not claimers:
        console.print("[dim]No claimers configured[/dim]")
        return

    total_bps = sum(c.get("royalty_bps", 0) for c in claimers)
    table = Table(title="Claimers", header_style="bold blue")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Role")
    table.add_column("Share", justify="right")
    table.add_column("Claimed SOL", justify="right")
    for c in claimers:
        share = c.get("royalty_bps", 0) / total_bps * 100 if total_bps > 0 else 0.0
        table.add_row(
            claimer_display_name(c),
            "Creator" if c.get("is_creator") else "Royalty recipient",
            f"{share:.1f}%",
            f"{claimed_sol(c):.2f}",
        )
    console.print(table)


# ── CSV ──────────────────────────────────────────────────────────────────────

CSV_COLUMNS = [
    "token_mint",
    "verdict",
    "pattern",
    "wallet",
    "display_name",
    "is_creator",
    "royalty_bps",
    "royalty_pct",
    "total_claimed_sol",
]


def format_csv(data: Any) -> str:
    """
    Format as CSV: one row per claimer across all results.

    Results without claimers (or failed checks) still get one row so every
    mint is represented.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)

    if isinstance(data, dict) and "analysis" in data:
        entries = [data]
    elif isinstance(data, dict) and "results" in data:
        entries = data["results"]
    else:
        writer.writerow(["value"])
        writer.writerow([json.dumps(data, cls=DecimalEncoder)])
        return buf.getvalue()

    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        for row in _csv_rows(entry):
            writer.writerow([row.get(col, "") for col in CSV_COLUMNS])

    return buf.getvalue()


def _csv_rows(entry: dict[str, Any]) -> list[dict[str, Any]]:
    mint = entry.get("token_mint", "")
    a = entry.get("analysis")
    if not a:
        return [{"token_mint": mint, "verdict": "ERROR"}]

    base = {"token_mint": mint, "verdict": a.get("verdict"), "pattern": a.get("pattern")}
    claimers = a.get("claimers") or []
    if not claimers:
        return [base]

    total_bps = sum(c.get("royalty_bps", 0) for c in claimers)
    rows = []
    for c in claimers:
        bps = c.get("royalty_bps", 0)
        rows.append(
            {
                **base,
                "wallet": c.get("wallet", ""),
                "display_name": claimer_display_name(c),
                "is_creator": c.get("is_creator", False),
                "royalty_bps": bps,
                "royalty_pct": round(bps / total_bps * 100, 4) if total_bps > 0 else 0.0,
                "total_claimed_sol": claimed_sol(c),
            }
        )
    return rows


# ── Utility ──────────────────────────────────────────────────────────────────


def claimer_display_name(claimer: dict[str, Any]) -> str:
    """Provider username, then Bags username, then 'AbCd...WxYz'."""
    name = claimer.get("provider_username") or claimer.get("username")
    if name:
        return name
    wallet = claimer.get("wallet", "")
    return f"{wallet[:4]}...{wallet[-4:]}" if len(wallet) > 8 else wallet


def claimed_sol(claimer: dict[str, Any]) -> float:
    return lamports_to_sol(parse_lamports(claimer.get("total_claimed")) or 0)


def relative_time(instant: datetime | None, now: datetime) -> str:
    """
    Human-friendly age of `instant`.

    'Just now', '5m ago', '3h ago', '2d ago', '3w ago', '45d ago', '13mo ago'.
    """
    if instant is None:
        return "No claims yet"

    seconds = int((now - instant).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if seconds < 60:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    if days < 30:
        return f"{days // 7}w ago"
    if days < 365:
        return f"{days}d ago"
    if days // 365 < 2:
        return f"{days // 30}mo ago"
    return f"{days}d ago"


def mask_api_key(key: str) -> str:
    """
    Mask an API key for safe display.

    'abcdefg123' → 'abcd****'
    '' → '****'
    """
    if not key or len(key) <= 4:
        return "****"
    return key[:4] + "****"


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
