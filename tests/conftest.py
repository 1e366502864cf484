"""
Global pytest configuration and fixtures for Einlass tests
"""

import pytest
import asyncio
import logging
import sys
from pathlib import Path

# Add the source root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from einlass.core.file import UploadFile  # noqa: E402

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

# Suppress noisy logs during testing
logging.getLogger('asyncio').setLevel(logging.WARNING)


class GatedTransport:
    """Transport whose uploads wait until the test releases them"""

    def __init__(self):
        self.started = []
        self.finished = []
        self.failures = {}
        self.options = []
        self.active = 0
        self.peak = 0
        self._gates = {}

    def _gate(self, name):
        if name not in self._gates:
            self._gates[name] = asyncio.Event()
        return self._gates[name]

    def release(self, *names):
        for name in names:
            self._gate(name).set()

    def fail(self, name, error):
        self.failures[name] = error
        self.release(name)

    async def __call__(self, file, options):
        self.started.append(file.name)
        self.options.append(dict(options))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await self._gate(file.name).wait()
            if file.name in self.failures:
                raise self.failures.pop(file.name)
            file.loaded = file.size
            self.finished.append(file.name)
            return f"uploaded/{file.name}"
        finally:
            self.active -= 1
            # a retried file waits for a fresh release
            self._gates.pop(file.name, None)


async def _drain(rounds: int = 20):
    """Let the event loop run pending callbacks and task steps"""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def gated_transport():
    return GatedTransport()


@pytest.fixture
def drain():
    return _drain


@pytest.fixture
def make_file():
    """Factory for in-memory candidates"""
    def factory(name: str, size: int = 10):
        return UploadFile(name, size, source=b"x" * size)
    return factory


@pytest.fixture
def sample_tree(tmp_path):
    """Folder with a few files and a nested directory"""
    root = tmp_path / "drop"
    root.mkdir()
    (root / "a.jpg").write_bytes(b"a" * 100)
    (root / "b.png").write_bytes(b"b" * 200)
    (root / "notes.txt").write_text("some notes")
    nested = root / "nested"
    nested.mkdir()
    (nested / "c.gif").write_bytes(b"c" * 300)
    (nested / "d.jpg").write_bytes(b"d" * 400)
    (root / ".hidden").write_text("secret")
    return root


# Custom markers for test categorization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
