import logging
import subprocess
from unittest.mock import MagicMock

import pytest
from pytest_mock import MockerFixture

from common.command_utils import command_exists, log_bootstrap, run_command
from labstack.config_models import AppSettings


@pytest.fixture
def settings():
    return AppSettings(symbols={"gear": "⚙️", "error": "❌", "warning": "!"})


def test_log_bootstrap_levels(mock_logger):
    log_bootstrap("hello", "success", mock_logger)
    log_bootstrap("careful", "warning", mock_logger)
    log_bootstrap("trace", "debug", mock_logger)

    mock_logger.info.assert_called_once_with("hello", exc_info=False)
    mock_logger.warning.assert_called_once_with("careful", exc_info=False)
    mock_logger.debug.assert_called_once_with("trace", exc_info=False)


def test_run_command_success(mocker: MockerFixture, settings, mock_logger):
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value = subprocess.CompletedProcess(
        args=["echo", "hi"], returncode=0, stdout="hi\n", stderr=""
    )

    result = run_command(
        ["echo", "hi"], settings, capture_output=True, current_logger=mock_logger
    )

    assert result.stdout == "hi\n"
    mock_run.assert_called_once_with(
        ["echo", "hi"],
        check=True,
        capture_output=True,
        text=True,
        input=None,
        cwd=None,
        env=None,
        timeout=None,
    )
    mock_logger.info.assert_any_call("⚙️ Executing: echo hi", exc_info=False)


def test_run_command_zero_timeout_means_no_limit(mocker: MockerFixture, settings):
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value = subprocess.CompletedProcess(args=["true"], returncode=0)

    run_command(["true"], settings, timeout=0)

    assert mock_run.call_args.kwargs["timeout"] is None


def test_run_command_quiet_logs_at_debug(mocker: MockerFixture, settings, mock_logger):
    mocker.patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(args=["true"], returncode=0),
    )

    run_command(["true"], settings, current_logger=mock_logger, quiet=True)

    mock_logger.info.assert_not_called()
    mock_logger.debug.assert_any_call("⚙️ Executing: true", exc_info=False)


def test_run_command_failure_reraises(mocker: MockerFixture, settings, mock_logger):
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(2, ["false"], stderr="boom"),
    )

    with pytest.raises(subprocess.CalledProcessError):
        run_command(["false"], settings, current_logger=mock_logger)

    mock_logger.error.assert_any_call(
        "❌ Command `false` failed (rc 2).", exc_info=False
    )
    mock_logger.error.assert_any_call("   stderr: boom", exc_info=False)


def test_run_command_timeout_reraises(mocker: MockerFixture, settings, mock_logger):
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.TimeoutExpired(["sleep", "9"], 3),
    )

    with pytest.raises(subprocess.TimeoutExpired):
        run_command(["sleep", "9"], settings, current_logger=mock_logger, timeout=3)

    mock_logger.error.assert_called_once()


def test_run_command_missing_executable(mocker: MockerFixture, settings):
    error = FileNotFoundError(2, "No such file", "nope")
    mocker.patch("subprocess.run", side_effect=error)

    with pytest.raises(FileNotFoundError):
        run_command(["nope"], settings, current_logger=MagicMock(spec=logging.Logger))


def test_command_exists(mocker: MockerFixture):
    mock_which = mocker.patch("shutil.which", side_effect=["/usr/bin/docker", None])

    assert command_exists("docker") is True
    assert command_exists("not-a-tool") is False
    assert mock_which.call_count == 2


def test_run_command_logs_captured_output_at_info(mocker: MockerFixture, settings, mock_logger):
    mocker.patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(
            args=["docker", "pull", "busybox"], returncode=0, stdout="Status: up to date\n", stderr="warn\n"
        ),
    )

    run_command(["docker", "pull", "busybox"], settings, capture_output=True, current_logger=mock_logger)

    mock_logger.info.assert_any_call("   stdout: Status: up to date", exc_info=False)
    mock_logger.info.assert_any_call("   stderr: warn", exc_info=False)


def test_run_command_quiet_output_stays_at_debug(mocker: MockerFixture, settings, mock_logger):
    mocker.patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(args=["dspmq"], returncode=0, stdout="STATUS(Running)\n"),
    )

    run_command(["dspmq"], settings, capture_output=True, current_logger=mock_logger, quiet=True)

    mock_logger.info.assert_not_called()
    mock_logger.debug.assert_any_call("   stdout: STATUS(Running)", exc_info=False)
