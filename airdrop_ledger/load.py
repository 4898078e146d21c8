#!/usr/bin/env python3
"""
Load a consolidated airdrop ledger into the claim contract, in chunks.

Reads the JSON written by `airdrop-fetch`; no rescan is needed. Exit status:
0 when the contract's totals moved by exactly what was submitted, 2 when they
did not (operator review, nothing is rolled back), non-zero with a message on
any fatal error.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from airdrop_ledger.ledger import read_ledger
from airdrop_ledger.loader import DEFAULT_CHUNK_SIZE, ChunkedLoader, LoadError, describe
from airdrop_ledger.rpc import RpcClient, RpcError
from airdrop_ledger.sink import LOAD_CLAIMS_SIG, TOTAL_LOADED_SIG, TOTAL_USERS_SIG, RecordingSink, RpcClaimSink
from airdrop_ledger.utils import env


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Submit the airdrop ledger to the claim contract in fixed-size chunks.")
    parser.add_argument("--ledger-json", default="artifacts/airdrop-ledger.json")
    parser.add_argument("--rpc-url", default=env("RPC", "http://localhost:8545"))
    parser.add_argument("--contract", default=env("AIRDROP_CONTRACT", ""), help="claim contract (default: $AIRDROP_CONTRACT)")
    parser.add_argument("--sender", default=env("SENDER", ""), help="node-managed owner account (default: $SENDER)")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE)
    parser.add_argument("--start-chunk", type=int, default=0, help="skip chunks already confirmed by a previous run")
    parser.add_argument("--use-allocation", action="store_true", help="load secondary_allocation instead of primary_amount")
    parser.add_argument("--load-sig", default=LOAD_CLAIMS_SIG)
    parser.add_argument("--total-loaded-sig", default=TOTAL_LOADED_SIG)
    parser.add_argument("--total-users-sig", default=TOTAL_USERS_SIG)
    parser.add_argument("--gas", type=int, default=0, help="0 = let the node estimate")
    parser.add_argument("--receipt-timeout-s", type=float, default=300.0)
    parser.add_argument("--dry-run", action="store_true", help="record batches in memory instead of sending")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        entries = read_ledger(args.ledger_json)
    except (OSError, ValueError) as e:
        raise SystemExit(f"cannot read ledger {args.ledger_json}: {e}")

    try:
        if args.dry_run:
            sink = RecordingSink()
        else:
            if not args.contract or not args.sender:
                raise ValueError("--contract and --sender are required unless --dry-run")
            sink = RpcClaimSink(
                RpcClient(str(args.rpc_url)),
                args.contract,
                args.sender,
                load_sig=str(args.load_sig),
                total_loaded_sig=str(args.total_loaded_sig),
                total_users_sig=str(args.total_users_sig),
                gas=int(args.gas) or None,
                receipt_timeout_s=float(args.receipt_timeout_s),
            )
        loader = ChunkedLoader(sink, int(args.chunk_size), use_allocation=bool(args.use_allocation))
        print(f"Loading {len(entries):,} claims in chunks of {loader.chunk_size}", file=sys.stderr)
        result = loader.load(entries, start_chunk=int(args.start_chunk))
    except ValueError as e:
        raise SystemExit(f"config error: {e}")
    except LoadError as e:
        raise SystemExit(
            f"load failed at chunk {e.chunk_index}: {e}\n"
            f"confirmed before failure: {e.entries_confirmed} entries, amount {e.amount_confirmed}; "
            f"re-run with --start-chunk {e.chunk_index} after checking the contract's total loaded"
        )
    except RpcError as e:
        raise SystemExit(f"rpc error: {e}")

    for line in describe(result, entries):
        print(line)
    return 0 if result.verified else 2


if __name__ == "__main__":
    raise SystemExit(main())
