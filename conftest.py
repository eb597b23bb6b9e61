"""
Root conftest.py

Long pulse runs are marked ``slow`` and skipped unless ``--runslow`` is given.
Multi-rank tests run one rank per thread and block on message queues and a
barrier; ``--rank-timeout`` bounds every such wait so that a rank whose
partner never answers fails instead of hanging the session.
"""

import pytest


def pytest_addoption(parser):
    group = parser.getgroup("sbp_elastic")
    group.addoption("--runslow", action="store_true", default=False,
                    help="also run tests marked slow")
    group.addoption("--rank-timeout", type=float, default=120.0,
                    help="seconds a threaded rank waits for a message or barrier")


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long pulse runs on finer grids (--runslow)")


def pytest_runtest_setup(item):
    if item.get_closest_marker("slow") is not None and not item.config.getoption("--runslow"):
        pytest.skip("slow: pass --runslow to run")
