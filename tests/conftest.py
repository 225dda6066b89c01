from logging import DEBUG, basicConfig
from pathlib import Path
from unittest.mock import patch

import pytest

from postbase import config as config_module
from postbase.config import Config
from postbase.value_objs import BuildMode
from postbase.web.app import init_app


@pytest.fixture(scope="session")
def configure_logging():
    basicConfig(level=DEBUG)


@pytest.fixture()
def content_dir(tmp_path) -> Path:
    path = tmp_path / "content"
    path.mkdir()
    return path


@pytest.fixture()
def output_dir(tmp_path) -> Path:
    return tmp_path / "public"


@pytest.fixture()
def config(content_dir, output_dir) -> Config:
    config_obj = Config(
        content_dir=content_dir,
        output_dir=output_dir,
        base_url="http://localhost",
        site_title="test blog",
        environment="test",
        default_author="Default Author",
        sentry_dsn=None,
    )
    with patch.object(config_module, "__config__", config_obj):
        yield config_obj


@pytest.fixture(autouse=True)
def reset_config():
    """The cli sets the global config, don't let that leak between tests"""
    yield
    config_module.__config__ = None


@pytest.fixture()
def app(config):
    a = init_app(config.content_dir, BuildMode.PREVIEW)
    a.config["TESTING"] = True
    return a


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def published_client(config):
    a = init_app(config.content_dir, BuildMode.PUBLISHED)
    a.config["TESTING"] = True
    return a.test_client()
