from logging import getLogger
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

import toml

logger = getLogger(__name__)


@dataclass
class Config:
    """A typecheckable config object.

    In order to keep the benefits of typechecking, don't pass this into places
    where the typechecker can't find it - ie: jinja templates.  Pass the
    individual values instead.

    """

    content_dir: Path
    output_dir: Path
    base_url: str
    site_title: str
    environment: str
    default_author: Optional[str]
    sentry_dsn: Optional[str]
    language: str = "en"
    log_level: str = "INFO"

    # repair text that was decoded with the wrong charset (mojibake) when
    # posts are read.  The source files are not touched.
    normalize_encoding: bool = True


__config__: Optional[Config] = None


def load_config(config_file: Path) -> Config:
    """Loads the configuration at the given path.

    Relative content and output directories are resolved against the
    directory the config file is in, so that a site can be built from
    anywhere.

    """
    logger.info("loading config from %s", config_file)
    if config_file.exists():
        with open(config_file, encoding="utf-8") as config_f:
            as_dict = toml.load(config_f)
    else:
        logger.warning("config file ('%s') not found, using defaults", config_file)
        as_dict = {}
    site_root = config_file.parent
    return Config(
        content_dir=site_root / as_dict.get("content_dir", "content"),
        output_dir=site_root / as_dict.get("output_dir", "public"),
        base_url=as_dict.get("base_url", "http://localhost:1313").rstrip("/"),
        site_title=as_dict.get("site_title", "postbase"),
        environment=as_dict.get("environment", "local"),
        default_author=as_dict.get("default_author"),
        sentry_dsn=as_dict.get("sentry_dsn"),
        language=as_dict.get("language", "en"),
        log_level=as_dict.get("log_level", "INFO"),
        normalize_encoding=as_dict.get("normalize_encoding", True),
    )


def default_config_file() -> Path:
    """Returns the location of the default config file, which lives at the
    root of the site"""
    return Path.cwd() / "postbase.toml"


def get_config() -> Config:
    """Returns the config.

    The the config does not change while the program is running, but in order
    to make it easy to test, don't call this function from the top-level (that
    makes it hard to mock).

    """
    global __config__
    if __config__ is None:
        __config__ = load_config(default_config_file())

    return __config__
