import re
import stat

from pytest_mock import MockerFixture

from common.secret_utils import (
    WEAK_FALLBACK_PASSWORD,
    ensure_secret,
    generate_password,
    read_secret,
)


def test_generate_password_shape():
    password = generate_password()
    assert len(password) == 20
    assert re.fullmatch(r"[A-Za-z0-9=]+", password)


def test_generate_password_maps_slash_and_plus(mocker: MockerFixture):
    # 0xfb 0xff encodes to "+/" in base64
    mocker.patch("common.secret_utils.secrets.token_bytes", return_value=b"\xfb\xff" * 9)

    password = generate_password()

    assert "/" not in password and "+" not in password
    assert password.startswith("aA")


def test_generate_password_without_random_source(mocker: MockerFixture, app_settings, mock_logger):
    mocker.patch(
        "common.secret_utils.secrets.token_bytes", side_effect=NotImplementedError
    )

    assert generate_password(app_settings, mock_logger) == WEAK_FALLBACK_PASSWORD
    mock_logger.warning.assert_called_once()


def test_ensure_secret_creates_private_file(tmp_path, app_settings, mock_logger):
    path = tmp_path / "secrets" / "mqAdminPassword"

    created = ensure_secret(path, lambda: "s3cret", app_settings, mock_logger)

    assert created is True
    assert path.read_text() == "s3cret"
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_ensure_secret_is_idempotent(tmp_path, app_settings, mock_logger):
    path = tmp_path / "secrets" / "mqAppPassword"
    values = iter(["first", "second"])

    assert ensure_secret(path, lambda: next(values), app_settings, mock_logger) is True
    assert ensure_secret(path, lambda: next(values), app_settings, mock_logger) is False
    assert path.read_text() == "first"


def test_ensure_secret_replaces_empty_file(tmp_path, app_settings, mock_logger):
    path = tmp_path / "aceWebAdminPassword"
    path.write_text("")

    assert ensure_secret(path, lambda: "filled", app_settings, mock_logger) is True
    assert path.read_text() == "filled"


def test_read_secret_strips_newlines(tmp_path):
    path = tmp_path / "secret"
    path.write_text("abc\r\ndef\n")
    assert read_secret(path) == "abcdef"
