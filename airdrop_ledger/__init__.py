"""Presale contribution scan, airdrop ledger consolidation and chunked claim loading."""

__version__ = "0.1.0"
