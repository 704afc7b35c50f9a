from __future__ import annotations

import pytest

from nextedit_engine.runtime import telemetry


@pytest.fixture(autouse=True, scope="session")
def quiet_telemetry() -> None:
    telemetry.configure(quiet=True)
