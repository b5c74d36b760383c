import os
import random
import sys

import pytest

# Modules live flat under src/ (and the plotter under analysis/); make them
# importable without an editable install.
ROOT_DIR = os.path.dirname(os.path.dirname(__file__))
for sub in ("src", "analysis"):
    path = os.path.join(ROOT_DIR, sub)
    if path not in sys.path:
        sys.path.insert(0, path)

from models import FlowCounters, ScenarioParams  # noqa: E402


@pytest.fixture(autouse=True)
def _set_seed():
    random.seed(1)


@pytest.fixture
def params():
    return ScenarioParams(stations=3, radius=40.0, packet_size=1000,
                          interval_ms=50.0, duration=100.0, variant="EDCA")


@pytest.fixture
def sample_counters():
    return FlowCounters(tx_packets=1000, rx_packets=950, lost_packets=50,
                        rx_bytes=950000, delay_sum=9500.0, jitter_sum=940.0)
