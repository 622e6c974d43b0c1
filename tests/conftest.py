"""
Shared fixtures for the strata test suite.
"""

import pytest

from strata import LoaderConfig, LoaderDiagnostics, make_loader
from strata.testing import MockComponent, RecordingListener


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep STRATA_* variables from the outer shell out of config tests."""
    import os
    for key in list(os.environ):
        if key.startswith("STRATA_"):
            monkeypatch.delenv(key)


@pytest.fixture
def recorder():
    return RecordingListener()


@pytest.fixture
def diagnostics(recorder):
    diag = LoaderDiagnostics()
    diag.add_listener(recorder)
    return diag


@pytest.fixture
def diamond():
    """
    A requires [B, C]; B and C both require D.

    Setup functions are MockComponents so call counts can be asserted.
    """
    d_value = object()
    return {
        "A": {"requires": ["B", "C"], "setup": MockComponent("a")},
        "B": {"requires": ["D"], "setup": MockComponent("b")},
        "C": {"requires": ["D"], "setup": MockComponent("c", delay=0.01)},
        "D": {"setup": MockComponent(d_value, delay=0.01)},
    }


@pytest.fixture
def sequential_config():
    return LoaderConfig(concurrent=False)


@pytest.fixture
def app_loader():
    """Loader with a virtual 'config' component."""
    return make_loader(
        {
            "db": {"requires": ["config"], "setup": lambda ctx: {"url": ctx.config["db_url"]}},
            "app": {"requires": ["config", "db"], "setup": lambda ctx: ("app", ctx.db)},
        },
        virtual=["config"],
    )
