import shutil
from collections import defaultdict
from datetime import datetime, timezone
from logging import getLogger
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import exc
from .config import Config
from .encoding import decode_post_bytes, find_mojibake, repair_mojibake
from .frontmatter import (
    body_line_offset,
    post_from_text,
    post_to_text,
    slugify,
)
from .markdown import lint_markdown
from .render import make_feed, render_listing_page, render_post_page
from .value_objs import (
    BuildMode,
    BuildReport,
    ContentSet,
    LintIssue,
    LintLevel,
    Post,
)

logger = getLogger(__name__)

POST_SUFFIX = ".md"


def iter_post_paths(content_dir: Path) -> Iterable[Path]:
    """All the post files under the content directory, in a stable order.

    Files starting with an underscore are section indexes (eg: _index.md), not
    posts.

    """
    if not content_dir.is_dir():
        raise FileNotFoundError(f"content directory not found: {content_dir}")
    for path in sorted(content_dir.rglob(f"*{POST_SUFFIX}")):
        if path.is_file() and not path.name.startswith("_"):
            yield path


def read_post_text(path: Path) -> Tuple[str, List[LintIssue]]:
    with open(path, "rb") as post_f:
        raw = post_f.read()
    return decode_post_bytes(raw, path)


def load_post(path: Path, normalize_encoding: bool = True) -> Tuple[Post, List[LintIssue]]:
    text, issues = read_post_text(path)
    post, post_issues = post_from_text(text, path, normalize_encoding)
    issues.extend(post_issues)
    issues.extend(lint_markdown(post.body, path, body_line_offset(text)))
    return post, issues


def check_unique_slugs(posts: Sequence[Post]) -> List[exc.DuplicateSlugException]:
    paths_by_slug: Dict[str, List[Path]] = defaultdict(list)
    for post in posts:
        paths_by_slug[post.slug].append(post.path or Path("<unknown>"))
    return [
        exc.DuplicateSlugException(slug, paths)
        for slug, paths in sorted(paths_by_slug.items())
        if len(paths) > 1
    ]


def load_posts(content_dir: Path, normalize_encoding: bool = True) -> ContentSet:
    """Load (and check) every post in the content directory.

    All errors are collected before raising, so that an author can fix them in
    one go.

    """
    posts = []
    issues: List[LintIssue] = []
    errors: List[exc.PostbaseException] = []
    for path in iter_post_paths(content_dir):
        try:
            post, post_issues = load_post(path, normalize_encoding)
        except (exc.FrontMatterException, exc.WrongEncodingException) as e:
            logger.error("%s", e)
            errors.append(e)
        else:
            posts.append(post)
            issues.extend(post_issues)

    errors.extend(check_unique_slugs(posts))

    if errors:
        raise exc.BuildFailedException(errors)

    for issue in issues:
        logger.warning("%s", issue)
    logger.info("loaded %d posts from %s", len(posts), content_dir)
    return ContentSet(posts, issues)


def sort_posts(posts: Iterable[Post]) -> List[Post]:
    """Newest first.  Slug breaks ties so that output is stable."""
    return sorted(posts, key=lambda p: (p.timestamp(), p.slug), reverse=True)


def select_posts(posts: Iterable[Post], mode: BuildMode) -> List[Post]:
    return sort_posts(post for post in posts if mode.includes(post))


def posts_by_tag(posts: Iterable[Post]) -> Dict[str, List[Post]]:
    by_tag: Dict[str, List[Post]] = defaultdict(list)
    for post in posts:
        for tag in post.tags:
            by_tag[tag].append(post)
    return {tag: sort_posts(by_tag[tag]) for tag in sorted(by_tag)}


def get_post(content_set: ContentSet, slug: str, mode: BuildMode) -> Post:
    post = content_set.by_slug(slug)
    if post is None or not mode.includes(post):
        raise exc.PostDoesNotExistException(slug)
    return post


def _write_page(path: Path, html: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as page_f:
        page_f.write(html)
    return path


def build_site(
    config: Config,
    mode: BuildMode,
    content_dir: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    clean: bool = False,
) -> BuildReport:
    """Render the content directory into a tree of static files.

    Raises BuildFailedException if any post is broken - a broken post is never
    quietly left out.

    """
    content_dir = content_dir or config.content_dir
    output_dir = output_dir or config.output_dir
    logger.info(
        "building %s into %s (%s)", content_dir, output_dir, mode.pretty_name()
    )

    content_set = load_posts(content_dir, config.normalize_encoding)
    posts = select_posts(content_set.posts, mode)

    if clean and output_dir.exists():
        logger.info("removing %s", output_dir)
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = BuildReport(mode, output_dir, issues=list(content_set.issues))
    for post in posts:
        html = render_post_page(post, config, mode)
        report.post_pages[post.slug] = _write_page(
            output_dir / post.slug / "index.html", html
        )
        logger.debug("wrote %s", post.slug)

    report.listing_pages.append(
        _write_page(
            output_dir / "index.html", render_listing_page(posts, config, mode)
        )
    )
    for tag, tagged in posts_by_tag(posts).items():
        report.listing_pages.append(
            _write_page(
                output_dir / "tags" / slugify(tag) / "index.html",
                render_listing_page(tagged, config, mode, tag=tag),
            )
        )

    report.feed_path = output_dir / "posts.rss"
    with open(report.feed_path, "wb") as feed_f:
        feed_f.write(make_feed(posts, config))

    skipped = len(content_set.posts) - len(posts)
    logger.info(
        "built %d post pages and %d listing pages (%d drafts skipped)",
        len(report.post_pages),
        len(report.listing_pages),
        skipped,
    )
    return report


def lint_content(content_dir: Path, normalize_encoding: bool = True) -> List[LintIssue]:
    """Every problem with the content - errors and warnings - without raising.

    Used for checking content before it's built."""
    try:
        content_set = load_posts(content_dir, normalize_encoding)
    except exc.BuildFailedException as e:
        issues = [_error_to_issue(error) for error in e.errors]
        # load what can be loaded to still report the warnings
        for path in iter_post_paths(content_dir):
            try:
                _, post_issues = load_post(path, normalize_encoding)
            except (exc.FrontMatterException, exc.WrongEncodingException):
                continue
            issues.extend(post_issues)
        return issues
    return list(content_set.issues)


def _error_to_issue(error: exc.PostbaseException) -> LintIssue:
    if isinstance(error, exc.FrontMatterSyntaxException):
        return LintIssue(error.path, None, error.line, error.message, LintLevel.ERROR)
    elif isinstance(error, exc.FrontMatterException):
        return LintIssue(
            error.path, error.field, None, error.message, LintLevel.ERROR
        )
    elif isinstance(error, exc.DuplicateSlugException):
        return LintIssue(
            error.paths[0], "slug", None, str(error), LintLevel.ERROR
        )
    elif isinstance(error, exc.WrongEncodingException):
        return LintIssue(error.path, None, None, str(error), LintLevel.ERROR)
    raise error


def fix_encoding(path: Path, apply: bool = False) -> List[Tuple[int, str, str]]:
    """Find (and optionally repair, in place) mojibake in a post file.

    Returns (line, found, replacement) for each sequence that can be repaired.
    Sequences that can't be repaired are left alone.

    """
    text, _ = read_post_text(path)
    fixes = []
    for line_number, sequence in find_mojibake(text):
        repaired = repair_mojibake(sequence)
        if repaired != sequence:
            fixes.append((line_number, sequence, repaired))
    if apply and fixes:
        logger.info("rewriting %s (%d fixes)", path, len(fixes))
        with open(path, "w", encoding="utf-8") as post_f:
            post_f.write(repair_mojibake(text))
    return fixes


def publish_post(path: Path) -> Post:
    """Flip the draft flag on a post, rewriting the file.

    Repairs nothing else - the rest of the file is written back as it was
    read, apart from formatting of the front matter."""
    text, _ = read_post_text(path)
    post, _ = post_from_text(text, path, normalize_encoding=False)
    if not post.draft:
        logger.warning("%s is already published", path)
        return post
    post.draft = False
    with open(path, "w", encoding="utf-8") as post_f:
        post_f.write(post_to_text(post))
    logger.info("published %s", post.slug)
    return post


def new_post(
    content_dir: Path,
    title: str,
    tags: Sequence[str],
    keywords: Sequence[str],
    author: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Create a new draft post, returning the path it was written to."""
    slug = slugify(title)
    if slug == "":
        raise exc.InvalidFieldException(
            content_dir, "title", f"can't make a slug out of {title!r}"
        )
    existing = [
        path
        for path in iter_post_paths(content_dir)
        if _slug_of(path) == slug
    ]
    path = content_dir / "posts" / f"{slug}{POST_SUFFIX}"
    if existing or path.exists():
        raise exc.DuplicateSlugException(slug, existing + [path])

    post = Post(
        date=(now or datetime.now(timezone.utc)).replace(microsecond=0),
        draft=True,
        title=title,
        tags=list(tags),
        slug=slug,
        keywords=list(keywords),
        body=f"\n# {title}\n",
        author=author,
    )
    # catches empty or duplicated tags and keywords before writing anything
    post_from_text(post_to_text(post), path)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as post_f:
        post_f.write(post_to_text(post))
    logger.info("created %s", path)
    return path


def _slug_of(path: Path) -> Optional[str]:
    """The slug of a post file, without validating the rest of it."""
    try:
        text, _ = read_post_text(path)
        post, _ = post_from_text(text, path, normalize_encoding=False)
    except exc.PostbaseException:
        return None
    return post.slug
