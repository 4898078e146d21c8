from __future__ import annotations

from typing import Any, Dict, List, Optional

from airdrop_ledger.models import AggregationState, LedgerEntry
from airdrop_ledger.utils import format_units, markdown_table


def summary_lines(
    state: AggregationState,
    entries: List[LedgerEntry],
    *,
    primary_decimals: int,
    secondary_decimals: int,
) -> List[str]:
    total_primary = state.total_primary()
    lines = [
        f"- contributors: {state.contributors:,}",
        f"- events processed: {state.events_processed:,}",
        f"- duplicates skipped: {state.duplicates_skipped:,}",
        f"- total contributed: {format_units(total_primary, primary_decimals)} ({total_primary} base units)",
    ]
    allocations = [int(e.secondary_allocation) for e in entries if e.secondary_allocation is not None]
    if allocations:
        total_secondary = sum(allocations)
        lines.append(
            f"- total allocation: {format_units(total_secondary, secondary_decimals, places=4)} ({total_secondary} base units)"
        )
    return lines


def render_markdown(
    state: AggregationState,
    entries: List[LedgerEntry],
    *,
    primary_decimals: int,
    secondary_decimals: int,
    inputs: Optional[Dict[str, Any]] = None,
) -> str:
    lines: List[str] = []
    lines.append("# Presale airdrop ledger")
    lines.append("")
    if inputs:
        lines.append(f"- Contract: `{inputs.get('contract', '')}`")
        lines.append(f"- Range: `{inputs.get('from_block')}` → `{inputs.get('to_block')}` (window `{inputs.get('window_size')}`)")
        if inputs.get("allocation"):
            alloc = inputs["allocation"]
            lines.append(f"- Allocation: price `{alloc['price']}`, claim `{alloc['claim_percent']}%`")
        lines.append("")

    lines.append("## Totals")
    lines.append("")
    lines.extend(summary_lines(state, entries, primary_decimals=primary_decimals, secondary_decimals=secondary_decimals))
    lines.append("")

    lines.append("## Contributors")
    lines.append("")
    has_allocation = any(e.secondary_allocation is not None for e in entries)
    header = ["Address", "Contributed"] + (["Allocation"] if has_allocation else [])
    rows: List[List[str]] = [header]
    for e in entries:
        row = [f"`{e.address}`", format_units(int(e.primary_amount), primary_decimals)]
        if has_allocation:
            row.append(format_units(int(e.secondary_allocation or 0), secondary_decimals, places=4))
        rows.append(row)
    lines.append(markdown_table(rows))
    lines.append("")
    return "\n".join(lines)
