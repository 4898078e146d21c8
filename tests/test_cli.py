from __future__ import annotations

import json
import signal

import pytest

from airdrop_ledger import fetch, load
from airdrop_ledger.models import RawEvent

from fakes import ALICE, BOB, ScriptedSource, buy, tx_hash

CONTRACT = "0x" + "9f" * 20


@pytest.fixture
def no_signal(monkeypatch):
    monkeypatch.setattr(signal, "signal", lambda *a: None)


def _fetch_args(tmp_path, *extra):
    return [
        "--contract",
        CONTRACT,
        "--from-block",
        "0",
        "--to-block",
        "20",
        "--window-size",
        "10",
        "--window-delay-s",
        "0",
        "--out-json",
        str(tmp_path / "ledger.json"),
        "--out-md",
        str(tmp_path / "ledger.md"),
        *extra,
    ]


def test_fetch_then_load_dry_run(tmp_path, monkeypatch, sleeps, no_signal, capsys):
    source = ScriptedSource(
        {
            0: [
                buy(ALICE, 1_000_000, tx=tx_hash(1)),
                RawEvent(event_name="", block_number=5, transaction_hash=tx_hash(2), log_index=0),
            ],
            10: [buy(BOB, 2_000_000, tx=tx_hash(3)), buy(ALICE, 500_000, tx=tx_hash(4))],
        },
        failures={10: 1},
    )
    monkeypatch.setattr(fetch, "RpcEventSource", lambda client, contract: source)

    assert fetch.main(_fetch_args(tmp_path, "--price", "500000", "--claim-percent", "10")) == 0

    doc = json.loads((tmp_path / "ledger.json").read_text(encoding="utf-8"))
    assert [e["address"] for e in doc["entries"]] == [ALICE, BOB]
    assert doc["entries"][0]["primary_amount"] == "1500000"
    assert doc["entries"][0]["secondary_allocation"] == "300000000000"
    assert doc["totals"]["events_processed"] == 3
    assert doc["inputs"]["allocation"]["claim_percent"] == 10
    assert "# Presale airdrop ledger" in (tmp_path / "ledger.md").read_text(encoding="utf-8")
    out = capsys.readouterr().out
    assert "- contributors: 2" in out

    rc = load.main(["--ledger-json", str(tmp_path / "ledger.json"), "--dry-run", "--chunk-size", "1", "--use-allocation"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "- chunks: 2 submitted, 0 skipped, 2 total" in out
    assert "- verified: yes" in out


def test_cancelled_fetch_writes_nothing(tmp_path, monkeypatch, sleeps, no_signal):
    class Interrupted(ScriptedSource):
        def get_events(self, from_block, to_block):
            raise KeyboardInterrupt

    monkeypatch.setattr(fetch, "RpcEventSource", lambda client, contract: Interrupted())

    assert fetch.main(_fetch_args(tmp_path)) == 130
    assert not (tmp_path / "ledger.json").exists()
    assert not (tmp_path / "ledger.md").exists()


def test_fetch_config_errors_exit(tmp_path, no_signal):
    with pytest.raises(SystemExit) as info:
        fetch.main(_fetch_args(tmp_path, "--price", "-3"))
    assert "config error" in str(info.value.code)

    with pytest.raises(SystemExit):
        fetch.main(_fetch_args(tmp_path, "--window-size", "0"))

    with pytest.raises(SystemExit) as info:
        fetch.main(_fetch_args(tmp_path, "--retry-delay-s", "nan"))
    assert "retry_delay_s" in str(info.value.code)


def test_load_requires_contract_without_dry_run(tmp_path, monkeypatch):
    monkeypatch.delenv("AIRDROP_CONTRACT", raising=False)
    monkeypatch.delenv("SENDER", raising=False)
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps([{"address": ALICE, "primary_amount": "1"}]), encoding="utf-8")

    with pytest.raises(SystemExit) as info:
        load.main(["--ledger-json", str(path)])
    assert "--contract" in str(info.value.code)


def test_load_missing_ledger(tmp_path):
    with pytest.raises(SystemExit) as info:
        load.main(["--ledger-json", str(tmp_path / "nope.json"), "--dry-run"])
    assert "cannot read ledger" in str(info.value.code)


def test_fetch_zero_price_is_config_error(tmp_path, no_signal):
    with pytest.raises(SystemExit) as info:
        fetch.main(_fetch_args(tmp_path, "--price", "0"))
    assert "config error" in str(info.value.code)
    assert "price" in str(info.value.code)
    assert not (tmp_path / "ledger.json").exists()


def test_fetch_without_price_has_no_allocation(tmp_path, monkeypatch, sleeps, no_signal):
    source = ScriptedSource({0: [buy(ALICE, 5, tx=tx_hash(1))]})
    monkeypatch.setattr(fetch, "RpcEventSource", lambda client, contract: source)

    assert fetch.main(_fetch_args(tmp_path)) == 0

    doc = json.loads((tmp_path / "ledger.json").read_text(encoding="utf-8"))
    assert doc["inputs"]["allocation"] is None
    assert "secondary_allocation" not in doc["entries"][0]


def test_sigterm_stops_scan_and_writes_nothing(tmp_path, monkeypatch, sleeps):
    handlers = {}
    monkeypatch.setattr(signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))

    class TerminatedMidScan(ScriptedSource):
        def get_events(self, from_block, to_block):
            events = super().get_events(from_block, to_block)
            handlers[signal.SIGTERM](signal.SIGTERM, None)
            return events

    source = TerminatedMidScan({0: [buy(ALICE, 5, tx=tx_hash(1))]})
    monkeypatch.setattr(fetch, "RpcEventSource", lambda client, contract: source)

    assert fetch.main(_fetch_args(tmp_path)) == 130
    assert source.calls == [(0, 9)]
    assert not (tmp_path / "ledger.json").exists()
    assert not (tmp_path / "ledger.md").exists()
