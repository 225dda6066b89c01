import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

Timestamp = Union[datetime, date]


@enum.unique
class BuildMode(enum.Enum):
    PUBLISHED = "published"
    PREVIEW = "preview"

    def includes(self, post: "Post") -> bool:
        """Whether a post appears in output built in this mode.

        Drafts only ever appear in previews."""
        if post.draft:
            return self is BuildMode.PREVIEW
        return True

    def pretty_name(self) -> str:
        return PRETTY_MODE_MAP[self]


PRETTY_MODE_MAP = {
    BuildMode.PUBLISHED: "published only",
    BuildMode.PREVIEW: "draft preview",
}


@enum.unique
class LintLevel(enum.Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class LintIssue:
    path: Path
    field: Optional[str]
    line: Optional[int]
    message: str
    level: LintLevel = LintLevel.WARNING

    def __str__(self) -> str:
        location = str(self.path)
        if self.line is not None:
            location += f":{self.line}"
        if self.field is not None:
            return f"{location}: {self.field}: {self.message}"
        return f"{location}: {self.message}"


@enum.unique
class SectionKind(enum.Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE_BLOCK = "code_block"
    LIST = "list"
    QUOTE = "quote"
    THEMATIC_BREAK = "thematic_break"
    HTML = "html"


@dataclass(frozen=True)
class Section:
    kind: SectionKind
    text: str
    level: Optional[int] = None
    # only for code blocks, and even then, optional
    language: Optional[str] = None


@dataclass
class Post:
    date: Timestamp
    draft: bool
    title: str
    tags: List[str]
    slug: str
    keywords: List[str]
    body: str
    summary: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    # unrecognised front matter, kept so that rewriting a file doesn't lose it
    extra: Dict[str, Any] = field(default_factory=dict)
    path: Optional[Path] = field(default=None, compare=False)

    def timestamp(self) -> datetime:
        """The date as a timezone aware datetime, for sorting.

        Plain dates are taken as midnight and naive datetimes as UTC.  The
        result is always in UTC."""
        if isinstance(self.date, datetime):
            as_dt = self.date
        else:
            as_dt = datetime.combine(self.date, time())
        if as_dt.tzinfo is None:
            as_dt = as_dt.replace(tzinfo=timezone.utc)
        return as_dt.astimezone(timezone.utc)

    def render_date(self) -> str:
        return self.date.strftime("%d %B %Y").lstrip("0")

    def sections(self) -> Sequence[Section]:
        from .markdown import extract_sections

        return extract_sections(self.body)


@dataclass
class BuildReport:
    mode: BuildMode
    output_dir: Path
    post_pages: Dict[str, Path] = field(default_factory=dict)
    listing_pages: List[Path] = field(default_factory=list)
    feed_path: Optional[Path] = None
    issues: List[LintIssue] = field(default_factory=list)

    def page_count(self) -> int:
        return len(self.post_pages) + len(self.listing_pages)


@dataclass
class ContentSet:
    """All the posts in a content directory, plus the (non-fatal) problems
    found while reading them."""

    posts: List[Post]
    issues: List[LintIssue] = field(default_factory=list)

    def by_slug(self, slug: str) -> Optional[Post]:
        for post in self.posts:
            if post.slug == slug:
                return post
        return None
