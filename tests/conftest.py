from __future__ import annotations

import time
from typing import List

import pytest


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    calls: List[float] = []
    monkeypatch.setattr(time, "sleep", lambda s: calls.append(s))
    return calls
