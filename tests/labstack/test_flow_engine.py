from labstack.flow_engine import (
    FlowEngineAdmin,
    configure_flow_engine_access,
    initialize_flow_engine_workdir,
)


def _commands(runtime):
    return [c.args[1] for c in runtime.run_one_shot.call_args_list]


def test_initialize_skips_existing_workdir(fake_runtime, completed, app_settings, mock_logger):
    fake_runtime.run_one_shot.return_value = completed(returncode=0)

    result = initialize_flow_engine_workdir(app_settings, {"runtime": fake_runtime}, mock_logger)

    assert result == "existing"
    assert _commands(fake_runtime) == ["test -d /workdir/config/common"]


def test_initialize_creates_missing_workdir(fake_runtime, completed, app_settings, mock_logger):
    fake_runtime.run_one_shot.side_effect = [completed(returncode=1), completed()]

    result = initialize_flow_engine_workdir(app_settings, {"runtime": fake_runtime}, mock_logger)

    assert result == "created"
    assert "mqsicreateworkdir /workdir" in _commands(fake_runtime)[1]
    kwargs = fake_runtime.run_one_shot.call_args.kwargs
    assert kwargs["volumes"] == [(app_settings.volume_names["acework"], "/workdir")]


def test_upsert_creates_new_user(fake_runtime, completed, app_settings, mock_logger):
    admin = FlowEngineAdmin(fake_runtime, app_settings, mock_logger)

    assert admin.upsert_web_user("Admin", "pw-value") == "created"
    assert fake_runtime.run_one_shot.call_count == 1
    assert _commands(fake_runtime)[0].endswith(" -c")


def test_upsert_falls_back_to_modify(fake_runtime, completed, app_settings, mock_logger):
    fake_runtime.run_one_shot.side_effect = [completed(returncode=1), completed()]
    admin = FlowEngineAdmin(fake_runtime, app_settings, mock_logger)

    assert admin.upsert_web_user("Admin", "pw-value") == "modified"
    create_cmd, modify_cmd = _commands(fake_runtime)
    assert create_cmd.endswith(" -c")
    assert modify_cmd.endswith(" -m")


def test_password_never_on_command_line(fake_runtime, completed, app_settings, mock_logger):
    fake_runtime.run_one_shot.side_effect = [completed(returncode=1), completed()]
    admin = FlowEngineAdmin(fake_runtime, app_settings, mock_logger)

    admin.upsert_web_user("Admin", "pw-value")

    for c in fake_runtime.run_one_shot.call_args_list:
        assert "pw-value" not in c.args[1]
        assert "ACE_WEB_PASSWORD" in c.kwargs["env_names"]
        assert c.kwargs["env"]["ACE_WEB_PASSWORD"] == "pw-value"


def test_configure_access_enables_auth_then_upserts(fake_runtime, completed, app_settings, mock_logger):
    context = {"runtime": fake_runtime, "passwords": {"ACE_WEB_PASSWORD": "pw-value"}}

    result = configure_flow_engine_access(app_settings, context, mock_logger)

    assert result == "created"
    commands = _commands(fake_runtime)
    assert "mqsichangeauthmode -w /workdir -b active" in commands[0]
    assert "mqsiwebuseradmin" in commands[1]


def test_upsert_twice_creates_then_modifies(fake_runtime, completed, app_settings, mock_logger):
    users = set()

    def mqsiwebuseradmin(image, command, **kwargs):
        name = kwargs["env"]["ACE_WEB_USER"]
        if command.endswith(" -c"):
            if name in users:
                return completed(returncode=1, stdout="BIP2210E: user already exists")
            users.add(name)
            return completed()
        return completed() if name in users else completed(returncode=1)

    fake_runtime.run_one_shot.side_effect = mqsiwebuseradmin
    admin = FlowEngineAdmin(fake_runtime, app_settings, mock_logger)

    assert admin.upsert_web_user("Admin", "pw-value") == "created"
    assert admin.upsert_web_user("Admin", "pw-value") == "modified"
    assert [c[-2:] for c in _commands(fake_runtime)] == ["-c", "-c", "-m"]
