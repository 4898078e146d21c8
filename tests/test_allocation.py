from __future__ import annotations

import pytest

from airdrop_ledger.allocation import AllocationCalculator


def test_usdc_to_18_decimals():
    calc = AllocationCalculator(500_000, 10, primary_decimals=6, secondary_decimals=18)
    # 1e6 * 1e12 // 5e5 = 2e12; * 10 // 100 = 2e11
    assert calc.derive(1_000_000) == 200_000_000_000


def test_truncation_order_is_fixed():
    calc = AllocationCalculator(7, 99, primary_decimals=6, secondary_decimals=6)
    # 1000 // 7 = 142; 142 * 99 = 14058; // 100 = 140
    assert calc.derive(1000) == 140
    # applying the percentage first would give 99000 // 100 // 7 = 141
    assert calc.derive(1000) != (1000 * 99 // 100) // 7


def test_zero_and_full_percent():
    assert AllocationCalculator(3, 0, primary_decimals=0, secondary_decimals=0).derive(10) == 0
    assert AllocationCalculator(3, 100, primary_decimals=0, secondary_decimals=0).derive(10) == 3


def test_derive_is_exact_beyond_float_range():
    calc = AllocationCalculator(1, 100, primary_decimals=6, secondary_decimals=18)
    big = 2**90 + 1
    assert calc.derive(big) == big * 10**12


@pytest.mark.parametrize(
    "kwargs",
    [
        {"price": 0, "claim_percent": 10},
        {"price": -1, "claim_percent": 10},
        {"price": 1.5, "claim_percent": 10},
        {"price": 10, "claim_percent": 101},
        {"price": 10, "claim_percent": -1},
        {"price": 10, "claim_percent": 10, "primary_decimals": 18, "secondary_decimals": 6},
        {"price": 10, "claim_percent": 10, "primary_decimals": -1},
    ],
)
def test_bad_configuration_fails_at_construction(kwargs):
    with pytest.raises(ValueError):
        AllocationCalculator(**kwargs)


def test_negative_input_rejected():
    with pytest.raises(ValueError):
        AllocationCalculator(10, 10).derive(-1)
