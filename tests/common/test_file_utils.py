import datetime
import os
import time

import pytest
from pytest_mock import MockerFixture

from common.file_utils import (
    ArtifactWriter,
    cleanup_old_logs,
    ensure_directories,
    fix_project_ownership,
    make_run_timestamp,
)


def test_make_run_timestamp_format():
    stamp = make_run_timestamp(datetime.datetime(2024, 3, 9, 7, 5, 1))
    assert stamp == "20240309-070501"


class TestArtifactWriter:
    def test_new_file_written_without_backup(self, tmp_path, app_settings, mock_logger):
        target = tmp_path / "nested" / "docker-compose.yml"
        writer = ArtifactWriter("20240101-000000", app_settings, mock_logger)

        backup = writer.write_artifact(target, "services: {}\n")

        assert backup is None
        assert target.read_text() == "services: {}\n"
        assert oct(target.stat().st_mode & 0o777) == oct(0o644)
        assert list(target.parent.glob("*.bak.*")) == []

    def test_existing_file_backed_up_before_overwrite(self, tmp_path, app_settings, mock_logger):
        target = tmp_path / ".env"
        target.write_text("OLD=1\n")
        os.chmod(target, 0o600)
        writer = ArtifactWriter("20240101-120000", app_settings, mock_logger)

        backup = writer.write_artifact(target, "NEW=1\n")

        backups = list(tmp_path.glob(".env.bak.*"))
        assert backups == [tmp_path / ".env.bak.20240101-120000"]
        assert backup == backups[0]
        assert backups[0].read_text() == "OLD=1\n"
        assert target.read_text() == "NEW=1\n"
        assert oct(target.stat().st_mode & 0o777) == oct(0o600)

    def test_failed_write_keeps_previous_content(
        self, tmp_path, app_settings, mock_logger, mocker: MockerFixture
    ):
        target = tmp_path / "auto-startup.cfg"
        target.write_text("original\n")
        mocker.patch("common.file_utils.os.replace", side_effect=OSError("disk full"))
        writer = ArtifactWriter("20240101-120000", app_settings, mock_logger)

        with pytest.raises(OSError):
            writer.write_artifact(target, "replacement\n")

        assert target.read_text() == "original\n"
        leftovers = [p.name for p in tmp_path.iterdir() if p.name.startswith(".auto-startup.cfg.")]
        assert leftovers == []

    def test_backups_of_one_run_share_timestamp(self, tmp_path, app_settings, mock_logger):
        first = tmp_path / "a.txt"
        second = tmp_path / "b.txt"
        first.write_text("a")
        second.write_text("b")
        writer = ArtifactWriter("20240505-050505", app_settings, mock_logger)

        writer.write_artifact(first, "a2")
        writer.write_artifact(second, "b2")

        assert sorted(p.name for p in tmp_path.glob("*.bak.*")) == [
            "a.txt.bak.20240505-050505",
            "b.txt.bak.20240505-050505",
        ]


def test_ensure_directories_reports_only_new(tmp_path, app_settings, mock_logger):
    existing = tmp_path / "logs"
    existing.mkdir()
    wanted = [existing, tmp_path / "secrets", tmp_path / "mq" / "mqsc"]

    created = ensure_directories(wanted, app_settings, mock_logger)

    assert created == [tmp_path / "secrets", tmp_path / "mq" / "mqsc"]
    assert all(path.is_dir() for path in wanted)


def test_cleanup_old_logs_removes_only_expired(tmp_path, app_settings, mock_logger):
    now = time.time()
    old_log = tmp_path / "bootstrap-20200101-000000.log"
    fresh_log = tmp_path / "bootstrap-20990101-000000.log"
    other = tmp_path / "mq-diagnostics-20200101-000000.txt"
    for path in (old_log, fresh_log, other):
        path.write_text("x")
    os.utime(old_log, (now - 40 * 86400, now - 40 * 86400))
    os.utime(other, (now - 40 * 86400, now - 40 * 86400))

    removed = cleanup_old_logs(tmp_path, 30, app_settings, mock_logger, now=now)

    assert removed == [old_log]
    assert not old_log.exists()
    assert fresh_log.exists()
    assert other.exists()


def test_cleanup_old_logs_disabled_with_zero_retention(tmp_path, app_settings, mock_logger):
    log_file = tmp_path / "bootstrap-1.log"
    log_file.write_text("x")
    os.utime(log_file, (0, 0))

    assert cleanup_old_logs(tmp_path, 0, app_settings, mock_logger) == []
    assert log_file.exists()


def test_fix_project_ownership_skipped_when_not_root(
    tmp_path, app_settings, mock_logger, mocker: MockerFixture
):
    mocker.patch("common.file_utils.os.geteuid", return_value=1000)
    mock_chown = mocker.patch("common.file_utils.os.chown")

    assert fix_project_ownership(tmp_path, "alice", app_settings, mock_logger) is False
    mock_chown.assert_not_called()


def test_fix_project_ownership_unknown_user_warns(
    tmp_path, app_settings, mock_logger, mocker: MockerFixture
):
    mocker.patch("common.file_utils.os.geteuid", return_value=0)
    mocker.patch("common.file_utils.pwd.getpwnam", side_effect=KeyError("ghost"))
    mock_chown = mocker.patch("common.file_utils.os.chown")

    assert fix_project_ownership(tmp_path, "ghost", app_settings, mock_logger) is False
    mock_chown.assert_not_called()
    mock_logger.warning.assert_called_once()


def test_fix_project_ownership_as_root_chowns_tree(
    tmp_path, app_settings, mock_logger, mocker: MockerFixture
):
    (tmp_path / "secrets").mkdir()
    (tmp_path / "secrets" / "mqAdminPassword").write_text("pw")
    mocker.patch("common.file_utils.os.geteuid", return_value=0)
    mocker.patch(
        "common.file_utils.pwd.getpwnam",
        return_value=mocker.Mock(pw_uid=1000, pw_gid=1000),
    )
    mock_chown = mocker.patch("common.file_utils.os.chown")

    assert fix_project_ownership(tmp_path, "alice", app_settings, mock_logger) is True
    assert mock_chown.call_count == 3
