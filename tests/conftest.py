from __future__ import annotations

from datetime import date, datetime

import pytest


@pytest.fixture
def fixed_now() -> datetime:
    # Wednesday
    return datetime(2025, 3, 12, 9, 0, 0)


@pytest.fixture
def today(fixed_now: datetime) -> date:
    return fixed_now.date()
