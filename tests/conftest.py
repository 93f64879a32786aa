# conftest.py
from __future__ import annotations

import os
import uuid

import pytest

import storekit.runtime.credentials as credentials_mod
from storekit.core.log import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from storekit.runtime.context import ProcessContext
from storekit.snapshot import ConfigurationSnapshot, CredentialBundle
from tests.helpers import InMemStore, LocalEngine, reset_stores
from tests.helpers.builders import reset_callback_results


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit storekit logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_storekit_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    if os.getenv("STOREKIT_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(level="DEBUG", json_output=prefer_json, pretty=not prefer_json)
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.fixture(autouse=True)
def _fresh_process_state(monkeypatch):
    """Every test starts as a brand-new executor process."""
    ProcessContext.reset_current()
    monkeypatch.setattr(credentials_mod, "_PROCESS_IDENTITY", None)
    reset_callback_results()
    yield
    ProcessContext.reset_current()
    reset_stores()


@pytest.fixture
def tlog():
    return get_logger("test")


@pytest.fixture
def snapshot() -> ConfigurationSnapshot:
    return ConfigurationSnapshot(
        cluster_addresses=("zk1.local", "zk2.local"),
        properties={"hbase.client.retries.number": "3"},
    )


@pytest.fixture
def store() -> InMemStore:
    return InMemStore()


@pytest.fixture
def user_credentials() -> CredentialBundle:
    return CredentialBundle(owner="alice", tokens={"HDFS_DELEGATION_TOKEN": "tok-hdfs"})


@pytest.fixture
def engine(user_credentials) -> LocalEngine:
    return LocalEngine(credentials=user_credentials)
