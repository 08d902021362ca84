# tests/conftest.py
import logging
import os

import pytest

from eventproxy.core import log, metrics
from eventproxy.core.dispatcher import Dispatcher


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging_and_metrics():
    # Setup logging (reads LOG_LEVEL / LOG_JSON / .env if available)
    log.setup()

    interval = float(os.getenv("METRICS_INTERVAL_TEST", "1.0"))
    json_mode = (os.getenv("LOG_JSON", "0") == "1")
    metrics.start_exporter(interval_sec=interval, json_mode=json_mode,
                           logger=logging.getLogger("metrics"))
    yield
    metrics.stop_exporter()


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield


@pytest.fixture
def d():
    return Dispatcher("test")


@pytest.fixture
def calls():
    return []
