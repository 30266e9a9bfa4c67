import sys
from pathlib import Path

import pytest


# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)
TESTS_STR = str(Path(__file__).resolve().parent)
if TESTS_STR not in sys.path:
    sys.path.insert(0, TESTS_STR)

from engine.provider_metrics import provider_metrics  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_provider_metrics():
    provider_metrics.reset()
    yield
    provider_metrics.reset()
