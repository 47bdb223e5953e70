# tests/conftest.py
import logging
import subprocess
from unittest.mock import MagicMock, create_autospec

import pytest

from common.container_runtime import ContainerRuntime
from labstack.config_models import AppSettings


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep settings-related variables of the calling shell out of every test."""
    for field_name in AppSettings.model_fields:
        monkeypatch.delenv(field_name.upper(), raising=False)


@pytest.fixture
def app_settings(tmp_path):
    """Settings rooted in a temporary project directory, with no health-gate delay."""
    return AppSettings(
        project_root=tmp_path / "mq-ace-dp",
        project_owner="",
        health_max_attempts=5,
        health_delay_seconds=0,
    )


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def completed():
    """Factory for CompletedProcess results returned by a fake runtime."""

    def _make(returncode=0, stdout="", stderr=""):
        return subprocess.CompletedProcess(
            args=["docker"], returncode=returncode, stdout=stdout, stderr=stderr
        )

    return _make


@pytest.fixture
def fake_runtime(completed):
    """A ContainerRuntime double whose calls all succeed unless a test says otherwise."""
    runtime = create_autospec(ContainerRuntime, instance=True)
    runtime.command = "docker"
    runtime.run_one_shot.return_value = completed()
    runtime.exec.return_value = completed()
    runtime.compose_up.return_value = completed()
    runtime.compose_ps.return_value = completed()
    runtime.compose_down.return_value = completed()
    runtime.logs.return_value = ""
    runtime.volume_exists.return_value = False
    runtime.volume_remove.return_value = True
    return runtime


@pytest.fixture
def restore_root_logger():
    """Give a test the root logger and put its handlers back afterwards."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)
