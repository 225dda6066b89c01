import sys
from pathlib import Path
from typing import Optional, Tuple
from logging import getLogger

import click

from . import config as config_module
from . import exc, svc
from .config import Config, load_config, default_config_file, get_config
from .logging import configure_logging
from .value_objs import BuildMode, LintLevel

logger = getLogger(__name__)

config_file_option = click.option(
    "-f",
    "--config-file",
    default=None,
    help="Path to config file (default: ./postbase.toml)",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)

content_dir_option = click.option(
    "-c",
    "--content-dir",
    default=None,
    help="Directory holding the posts (default: from config)",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)


def setup(config_file: Optional[Path]) -> Config:
    """Load the config (making it the one get_config returns) and configure
    logging to match."""
    if config_file is None:
        config_file = default_config_file()
    config = load_config(config_file)
    config_module.__config__ = config
    configure_logging(config.log_level)
    return config


@click.command("postbase-build", help="Build the site into static files")
@config_file_option
@content_dir_option
@click.option(
    "-o",
    "--output-dir",
    default=None,
    help="Where to write the site (default: from config)",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--drafts",
    is_flag=True,
    default=False,
    help="Build a draft preview, including posts marked as drafts",
)
@click.option(
    "--clean",
    is_flag=True,
    default=False,
    help="Remove the output directory before building",
)
def build(
    config_file: Optional[Path],
    content_dir: Optional[Path],
    output_dir: Optional[Path],
    drafts: bool,
    clean: bool,
) -> None:
    config = setup(config_file)
    mode = BuildMode.PREVIEW if drafts else BuildMode.PUBLISHED
    try:
        report = svc.build_site(config, mode, content_dir, output_dir, clean=clean)
    except exc.BuildFailedException as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(
        f"built {len(report.post_pages)} posts into {report.output_dir}"
        f" ({len(report.issues)} warnings)"
    )


@click.command("postbase-check", help="Check posts for problems without building")
@config_file_option
@content_dir_option
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Fail on warnings as well as errors",
)
def check(config_file: Optional[Path], content_dir: Optional[Path], strict: bool) -> None:
    config = setup(config_file)
    issues = svc.lint_content(content_dir or config.content_dir, config.normalize_encoding)
    for issue in issues:
        click.echo(f"{issue.level.value}: {issue}")
    errors = [issue for issue in issues if issue.level is LintLevel.ERROR]
    click.echo(f"{len(errors)} errors, {len(issues) - len(errors)} warnings")
    if errors or (strict and issues):
        sys.exit(1)


@click.command(
    "postbase-fix-encoding",
    help="Find and repair mojibake in posts (dry-run by default)",
)
@config_file_option
@content_dir_option
@click.option(
    "--apply",
    is_flag=True,
    default=False,
    help="Actually rewrite the files (default: dry-run mode)",
)
def fix_encoding(
    config_file: Optional[Path], content_dir: Optional[Path], apply: bool
) -> None:
    config = setup(config_file)
    if not apply:
        click.echo("DRY-RUN MODE: No changes will be made")
    total = 0
    for path in svc.iter_post_paths(content_dir or config.content_dir):
        for line, found, replacement in svc.fix_encoding(path, apply=apply):
            click.echo(f"{path}:{line}: {found!r} -> {replacement!r}")
            total += 1
    verb = "repaired" if apply else "repairable"
    click.echo(f"{total} sequences {verb}")


@click.command("postbase-new", help="Create a new draft post")
@config_file_option
@content_dir_option
@click.argument("title")
@click.option("-t", "--tag", "tags", multiple=True, required=True, help="A tag (repeatable)")
@click.option(
    "-k", "--keyword", "keywords", multiple=True, required=True, help="A keyword (repeatable)"
)
@click.option("-a", "--author", default=None, help="Author (default: from config)")
def new(
    config_file: Optional[Path],
    content_dir: Optional[Path],
    title: str,
    tags: Tuple[str, ...],
    keywords: Tuple[str, ...],
    author: Optional[str],
) -> None:
    config = setup(config_file)
    try:
        path = svc.new_post(
            content_dir or config.content_dir,
            title,
            tags,
            keywords,
            author=author or config.default_author,
        )
    except exc.PostbaseException as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(str(path))


@click.command("postbase-publish", help="Mark a draft post as published")
@config_file_option
@click.argument(
    "post_path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
def publish(config_file: Optional[Path], post_path: Path) -> None:
    setup(config_file)
    try:
        post = svc.publish_post(post_path)
    except exc.PostbaseException as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(f"{post.slug} is published")


@click.command("postbase-serve", help="Run a local preview server")
@config_file_option
@content_dir_option
@click.option(
    "--drafts/--no-drafts",
    default=True,
    help="Show drafts (the default) or only what would be published",
)
@click.option("-p", "--port", default=1313, type=int)
def serve(
    config_file: Optional[Path], content_dir: Optional[Path], drafts: bool, port: int
) -> None:
    from .web.app import init_app

    setup(config_file)
    mode = BuildMode.PREVIEW if drafts else BuildMode.PUBLISHED
    init_app(content_dir, mode).run(port=port)


@click.command("postbase-config")
@config_file_option
def config_cli(config_file: Optional[Path]):
    setup(config_file)
    logger.info(get_config())
