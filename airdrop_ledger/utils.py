from __future__ import annotations

import json
import os
import re
from decimal import Decimal, getcontext
from typing import Any, List

from Crypto.Hash import keccak

getcontext().prec = 80


def env(name: str, default: str) -> str:
    val = os.getenv(name)
    return val if val else default


def keccak_hex(text: str) -> str:
    h = keccak.new(digest_bits=256)
    h.update(text.encode("utf-8"))
    return h.hexdigest()


def keccak_topic(signature: str) -> str:
    return "0x" + keccak_hex(signature)


def keccak_selector(signature: str) -> str:
    return keccak_hex(signature)[:8]


def pad32(hex_str: str) -> str:
    return hex_str.rjust(64, "0")


def abi_encode_address(address: str) -> str:
    return pad32(normalize_address(address)[2:])


def abi_encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError(f"uint256 cannot be negative: {value}")
    if value >= 2**256:
        raise ValueError(f"uint256 overflow: {value}")
    return pad32(hex(value)[2:])


def abi_encode_address_uint_arrays(addresses: List[str], amounts: List[int]) -> str:
    # (address[], uint256[]): two head offsets, then each tail as length + words.
    if len(addresses) != len(amounts):
        raise ValueError(f"length mismatch: {len(addresses)} addresses vs {len(amounts)} amounts")
    n = len(addresses)
    first_offset = 64
    second_offset = first_offset + 32 * (n + 1)
    words = [abi_encode_uint(first_offset), abi_encode_uint(second_offset), abi_encode_uint(n)]
    words.extend(abi_encode_address(a) for a in addresses)
    words.append(abi_encode_uint(n))
    words.extend(abi_encode_uint(int(v)) for v in amounts)
    return "".join(words)


def decode_words(data_hex: str, n: int) -> List[int]:
    if not str(data_hex).startswith("0x"):
        raise ValueError("data must be 0x-prefixed")
    hex_str = str(data_hex)[2:]
    need = 64 * n
    if len(hex_str) < need:
        raise ValueError(f"data too short: need {need} hex chars, got {len(hex_str)}")
    return [int(hex_str[i : i + 64], 16) for i in range(0, need, 64)]


def normalize_address(addr: str) -> str:
    a = str(addr).lower()
    if not a.startswith("0x") or len(a) != 42 or any(c not in "0123456789abcdef" for c in a[2:]):
        raise ValueError(f"invalid address: {addr}")
    return a


def topic_to_address(topic_hex: str) -> str:
    t = str(topic_hex).lower()
    if t.startswith("0x"):
        t = t[2:]
    if len(t) != 64:
        raise ValueError(f"bad topic: {topic_hex}")
    return "0x" + t[-40:]


def parse_uint(value: Any) -> int:
    """Parse a non-negative base-unit amount from an int or a decimal string."""
    if isinstance(value, bool):
        raise ValueError(f"not an integer amount: {value!r}")
    if isinstance(value, int):
        n = value
    elif isinstance(value, str) and re.fullmatch(r"[0-9]+", value.strip()):
        n = int(value.strip())
    else:
        raise ValueError(f"not an integer amount: {value!r}")
    if n < 0:
        raise ValueError(f"negative amount: {value!r}")
    return n


def to_units(amount: int, decimals: int) -> Decimal:
    return Decimal(int(amount)) / (Decimal(10) ** decimals)


def format_units(amount: int, decimals: int, *, places: int = 2) -> str:
    q = Decimal(10) ** -places
    return f"{to_units(amount, decimals).quantize(q):,}"


def write_json_atomic(path: str, data: Any) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    os.replace(tmp, path)


def write_text_atomic(path: str, text: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
    os.replace(tmp, path)


def read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def markdown_table(rows: List[List[str]]) -> str:
    if not rows:
        return ""
    header = rows[0]
    out = []
    out.append("| " + " | ".join(header) + " |")
    out.append("| " + " | ".join(["---"] * len(header)) + " |")
    for r in rows[1:]:
        out.append("| " + " | ".join(r) + " |")
    return "\n".join(out)
