"""pytest configuration and shared fixtures"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

# keep test runs out of the user's log directory
os.environ.setdefault("SNITRAY_LOG_DIR", tempfile.mkdtemp(prefix="snitray-test-logs-"))

# add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from snitray.core.engine import Engine
from snitray.core.services.config import ConfigKeys, ConfigReader
from snitray.core.tray_manager import TrayManager
from snitray.tray.session import TraySession

from mocks import FakeBusConnection, FakeBusFactory


# ============= Engine Fixtures =============

@pytest.fixture
def engine():
    """A started engine, stopped again after the test"""
    eng = Engine(name="TestEngine")
    assert eng.start() is True
    yield eng
    eng.stop()


@pytest.fixture
def config(tmp_path):
    """Default configuration with a short shutdown grace"""
    reader = ConfigReader(tmp_path / "config.json")
    reader.load_config()
    reader.set_setting(ConfigKeys.ENGINE_SHUTDOWN_GRACE_MS, 50)
    return reader


# ============= Bus Fixtures =============

@pytest.fixture
def bus():
    """Recording bus connection"""
    return FakeBusConnection("test")


@pytest.fixture
def bus_factory():
    return FakeBusFactory()


# ============= Session Fixtures =============

@pytest.fixture
def session(engine, bus):
    """A published tray session on the fake bus"""
    tray = TraySession.create("test-tray", engine, bus)
    yield tray
    if engine.is_running:
        tray.close()


@pytest.fixture
def changes(session):
    """Every change notification the session emits, in order"""
    received = []
    session.add_change_listener(received.append)
    return received


@pytest.fixture
def manager(config, bus_factory):
    """TrayManager on its own engine and the fake bus"""
    mgr = TrayManager(config=config, bus_factory=bus_factory)
    yield mgr
    mgr.shutdown()
    mgr.engine.stop()


# ============= Helpers =============

@pytest.fixture
def wait_until():
    """Poll a condition until it holds or the timeout expires"""
    def _wait(predicate, timeout=2.0, interval=0.01):
        import time
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait
