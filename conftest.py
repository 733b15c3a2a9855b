"""
Pytest configuration for the chainlink-plug test suite.

Makes the package importable from a source checkout; the shared fixtures
live in chainlink_plug/tests/conftest.py.
"""

import sys
from pathlib import Path

_current_dir = Path(__file__).resolve().parent
if str(_current_dir) not in sys.path:
    sys.path.insert(0, str(_current_dir))


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "subprocess: test spawns a real child process"
    )
