import subprocess

import pytest

from labstack.errors import ImagePullError
from labstack.images import pull_images, pull_stack_images


def test_pull_images_in_order(fake_runtime, app_settings, mock_logger):
    pull_stack_images(app_settings, {"runtime": fake_runtime}, mock_logger)

    pulled = [c.args[0] for c in fake_runtime.pull.call_args_list]
    assert pulled == [app_settings.mq_image, app_settings.ace_image, app_settings.dp_image]


def test_pull_failure_is_fatal_and_not_retried(fake_runtime, app_settings, mock_logger):
    fake_runtime.pull.side_effect = [None, subprocess.CalledProcessError(1, ["docker", "pull"])]

    with pytest.raises(ImagePullError) as excinfo:
        pull_images(fake_runtime, ["a:1", "b:2", "c:3"], app_settings, mock_logger)

    assert excinfo.value.image == "b:2"
    assert fake_runtime.pull.call_count == 2
