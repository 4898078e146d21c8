#!/usr/bin/env python3
"""
Presale contributions → consolidated airdrop ledger (event scan via eth_getLogs).

Why this exists
---------------
The presale contract emits one `Buy(user, amount)` per purchase, and a buyer can
purchase many times. The claim contract wants one row per address, so we replay
every Buy in block order and sum per address in USDC base units.

RPC endpoints fail and rate-limit on long historical scans. A failed window is
retried (same range, fixed delay) until it succeeds. Log retransmissions are
dropped by (transactionHash, logIndex).

Outputs
-------
- artifacts/airdrop-ledger.json  (input to `airdrop-load`)
- artifacts/airdrop-ledger.md

A cancelled scan (SIGTERM / Ctrl-C) writes nothing.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from typing import Any, Dict, Optional

from airdrop_ledger.allocation import AllocationCalculator
from airdrop_ledger.ledger import write_ledger
from airdrop_ledger.pipeline import build_ledger
from airdrop_ledger.report import render_markdown, summary_lines
from airdrop_ledger.rpc import RpcClient
from airdrop_ledger.scanner import ScanCancelled, WindowedScanner
from airdrop_ledger.source import TOPIC0, RpcEventSource
from airdrop_ledger.utils import env, normalize_address, write_text_atomic

PRESALE_START_BLOCK = 39500492
PRESALE_END_BLOCK = 42569715


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan presale Buy events and write the consolidated airdrop ledger.")
    parser.add_argument("--rpc-url", default=env("RPC", "https://arb1.arbitrum.io/rpc"))
    parser.add_argument("--contract", default=env("CONTRACT", ""), help="presale contract (default: $CONTRACT)")
    parser.add_argument("--from-block", type=int, default=PRESALE_START_BLOCK)
    parser.add_argument("--to-block", type=int, default=PRESALE_END_BLOCK, help="exclusive")
    parser.add_argument("--window-size", type=int, default=1000)
    parser.add_argument("--window-delay-s", type=float, default=1.0)
    parser.add_argument("--retry-delay-s", type=float, default=1.0)
    parser.add_argument("--primary-decimals", type=int, default=6)
    parser.add_argument("--secondary-decimals", type=int, default=18)
    parser.add_argument("--price", type=int, default=None, help="secondary base units per primary token; omit for no allocation")
    parser.add_argument("--claim-percent", type=int, default=10)
    parser.add_argument("--out-json", default="artifacts/airdrop-ledger.json")
    parser.add_argument("--out-md", default="artifacts/airdrop-ledger.md")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    if not args.contract:
        raise SystemExit("missing --contract (or CONTRACT in the environment)")
    stop = threading.Event()
    try:
        contract = normalize_address(args.contract)
        calculator: Optional[AllocationCalculator] = None
        if args.price is not None:
            calculator = AllocationCalculator(
                int(args.price),
                int(args.claim_percent),
                primary_decimals=int(args.primary_decimals),
                secondary_decimals=int(args.secondary_decimals),
            )
        scanner = WindowedScanner(
            RpcEventSource(RpcClient(str(args.rpc_url)), contract),
            start_block=int(args.from_block),
            end_block=int(args.to_block),
            window_size=int(args.window_size),
            window_delay_s=float(args.window_delay_s),
            retry_delay_s=float(args.retry_delay_s),
            stop=stop,
        )
    except ValueError as e:
        raise SystemExit(f"config error: {e}")

    signal.signal(signal.SIGTERM, lambda _signum, _frame: stop.set())

    print(
        f"Scanning {contract} blocks {args.from_block:,}..{args.to_block:,} "
        f"({scanner.window_count():,} windows of {args.window_size:,})",
        file=sys.stderr,
    )
    try:
        state, entries = build_ledger(scanner, calculator)
    except (ScanCancelled, KeyboardInterrupt):
        print("scan cancelled; no ledger written", file=sys.stderr)
        return 130

    inputs: Dict[str, Any] = {
        "rpc_url": str(args.rpc_url),
        "contract": contract,
        "from_block": int(args.from_block),
        "to_block": int(args.to_block),
        "window_size": int(args.window_size),
        "topic0": TOPIC0,
        "primary_decimals": int(args.primary_decimals),
        "secondary_decimals": int(args.secondary_decimals),
        "allocation": calculator.describe() if calculator else None,
    }
    write_ledger(args.out_json, entries, state=state, inputs=inputs)
    write_text_atomic(
        args.out_md,
        render_markdown(
            state,
            entries,
            primary_decimals=int(args.primary_decimals),
            secondary_decimals=int(args.secondary_decimals),
            inputs=inputs,
        ),
    )

    for line in summary_lines(
        state, entries, primary_decimals=int(args.primary_decimals), secondary_decimals=int(args.secondary_decimals)
    ):
        print(line)
    print(f"wrote {args.out_json} and {args.out_md}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
