"""Reading and writing the metadata at the top of post files.

Posts start with a block of TOML between two lines of "+++", eg:

    +++
    date = 2024-03-10T09:30:00+00:00
    draft = true
    title = "Hello, World"
    tags = ["meta"]
    slug = "hello-world"
    keywords = ["hello"]
    +++

    The body, in markdown.

"""

import re
import json
import unicodedata
from datetime import date, datetime
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, List, Tuple

import toml
from dateutil.parser import isoparse

from . import exc
from .encoding import lint_encoding, repair_mojibake
from .value_objs import LintIssue, Post

logger = getLogger(__name__)

DELIMITER = "+++"

# the order fields are written back out in
FIELD_ORDER = [
    "date",
    "draft",
    "title",
    "tags",
    "summary",
    "slug",
    "description",
    "keywords",
    "author",
]

REQUIRED_FIELDS = {"date", "draft", "title", "tags", "slug", "keywords"}

STRING_FIELDS = {"title", "summary", "slug", "description", "author"}

LIST_FIELDS = {"tags", "keywords"}

SLUG_REGEX = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

TOML_ERROR_LINE_REGEX = re.compile(r"line (\d+)")


def split_front_matter(text: str, path: Path) -> Tuple[str, str]:
    """Split the text of a post into (front matter, body)."""
    lines = text.lstrip("\ufeff").splitlines(keepends=True)
    start = 0
    while start < len(lines) and lines[start].strip() == "":
        start += 1
    if start == len(lines) or lines[start].strip() != DELIMITER:
        raise exc.MissingFrontMatterException(path)
    for end in range(start + 1, len(lines)):
        if lines[end].strip() == DELIMITER:
            front_matter = "".join(lines[start + 1 : end])
            body = "".join(lines[end + 1 :])
            return front_matter, body
    raise exc.MissingFrontMatterException(path, "front matter block is never closed")


def body_line_offset(text: str) -> int:
    """How many lines come before the body, so that lint issues in the body
    can be reported against lines of the file."""
    front_matter, _ = split_front_matter(text, Path("-"))
    leading = len(text) - len(text.lstrip("\ufeff\r\n\t "))
    return text[:leading].count("\n") + front_matter.count("\n") + 2


def parse_timestamp(value: Any, path: Path, field: str = "date") -> Any:
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip())
        except ValueError:
            raise exc.UnparseableDateException(path, field, value)
    raise exc.UnparseableDateException(path, field, value)


def _check_string_list(metadata: Dict[str, Any], key: str, path: Path) -> List[str]:
    value = metadata[key]
    if not isinstance(value, list):
        raise exc.InvalidFieldException(path, key, "must be a list of strings")
    if len(value) == 0:
        raise exc.InvalidFieldException(path, key, "must not be empty")
    for item in value:
        if not isinstance(item, str) or item.strip() == "":
            raise exc.InvalidFieldException(
                path, key, f"must only contain non-empty strings, got {item!r}"
            )
    seen = set()
    for item in value:
        if item in seen:
            raise exc.InvalidFieldException(path, key, f"duplicate entry: {item!r}")
        seen.add(item)
    return list(value)


def parse_front_matter(front_matter: str, path: Path) -> Dict[str, Any]:
    """Parse and validate a front matter block.

    Raises a subclass of FrontMatterException naming the file and the field
    for the first problem found.

    """
    try:
        metadata = toml.loads(front_matter)
    except toml.TomlDecodeError as e:
        line_match = TOML_ERROR_LINE_REGEX.search(str(e))
        # +1 for the opening delimiter
        line = int(line_match.group(1)) + 1 if line_match else None
        raise exc.FrontMatterSyntaxException(path, f"invalid TOML: {e}", line)

    for key in FIELD_ORDER:
        if key in REQUIRED_FIELDS and key not in metadata:
            raise exc.MissingFieldException(path, key)

    metadata["date"] = parse_timestamp(metadata["date"], path)

    if not isinstance(metadata["draft"], bool):
        raise exc.InvalidFieldException(path, "draft", "must be true or false")

    for key in STRING_FIELDS:
        if key in metadata and not isinstance(metadata[key], str):
            raise exc.InvalidFieldException(path, key, "must be a string")

    if metadata["title"].strip() == "":
        raise exc.InvalidFieldException(path, "title", "must not be empty")

    if not SLUG_REGEX.match(metadata["slug"]):
        raise exc.InvalidFieldException(
            path,
            "slug",
            f"'{metadata['slug']}' is not url-safe (lower case letters, digits and hyphens only)",
        )

    for key in LIST_FIELDS:
        metadata[key] = _check_string_list(metadata, key, path)

    return metadata


def _normalize_strings(metadata: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(metadata)
    for key in STRING_FIELDS:
        if key in normalized:
            normalized[key] = repair_mojibake(normalized[key])
    for key in LIST_FIELDS:
        normalized[key] = [repair_mojibake(item) for item in normalized[key]]
    return normalized


def _lint_metadata(metadata: Dict[str, Any], path: Path) -> List[LintIssue]:
    issues = []
    for key in FIELD_ORDER:
        value = metadata.get(key)
        if isinstance(value, str):
            issues.extend(lint_encoding(value, path, field=key))
        elif isinstance(value, list):
            for item in value:
                issues.extend(lint_encoding(item, path, field=key))
    return issues


def post_from_text(
    text: str, path: Path, normalize_encoding: bool = True
) -> Tuple[Post, List[LintIssue]]:
    """Parse the full text of a post file.

    Returns the post and any encoding problems found in it.  When
    normalize_encoding is set the problems that can be repaired are repaired in
    the returned post (but they are still reported).

    """
    front_matter, body = split_front_matter(text, path)
    metadata = parse_front_matter(front_matter, path)

    issues = _lint_metadata(metadata, path)
    issues.extend(lint_encoding(body, path, line_offset=body_line_offset(text)))
    if normalize_encoding:
        metadata = _normalize_strings(metadata)
        body = repair_mojibake(body)

    extra = {k: v for k, v in metadata.items() if k not in FIELD_ORDER}
    post = Post(
        date=metadata["date"],
        draft=metadata["draft"],
        title=metadata["title"],
        tags=metadata["tags"],
        slug=metadata["slug"],
        keywords=metadata["keywords"],
        body=body,
        summary=metadata.get("summary"),
        description=metadata.get("description"),
        author=metadata.get("author"),
        extra=extra,
        path=path,
    )
    return post, issues


def post_to_front_matter(post: Post) -> Dict[str, Any]:
    as_dict: Dict[str, Any] = {}
    for key in FIELD_ORDER:
        value = getattr(post, key)
        if value is None:
            continue
        if key in LIST_FIELDS:
            value = list(value)
        as_dict[key] = value
    as_dict.update(post.extra)
    return as_dict


def _dump_str(value: str) -> str:
    """A TOML basic string.  toml's own escaping mangles \\x7f and the other
    characters that repr() writes as \\xNN, so escape everything unprintable
    as \\u or \\U instead."""
    # json's escapes (\\", \\\\, \\n, \\u0000...) are all valid in TOML
    quoted = json.dumps(value, ensure_ascii=False)
    escaped = []
    for char in quoted:
        if char.isprintable():
            escaped.append(char)
        elif ord(char) > 0xFFFF:
            escaped.append(f"\\U{ord(char):08x}")
        else:
            escaped.append(f"\\u{ord(char):04x}")
    return "".join(escaped)


class FrontMatterEncoder(toml.TomlEncoder):
    def __init__(self):
        super().__init__()
        self.dump_funcs[str] = _dump_str


def post_to_text(post: Post) -> str:
    """Write a post back out in the same form it is read in."""
    front_matter = toml.dumps(
        post_to_front_matter(post), encoder=FrontMatterEncoder()
    )
    return f"{DELIMITER}\n{front_matter}{DELIMITER}\n{post.body}"


def slugify(title: str) -> str:
    """Make a url-safe slug from a title, eg: "What's New in 2.0?" becomes
    "whats-new-in-2-0"."""
    ascii_title = (
        unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    )
    slug = ascii_title.lower().replace("'", "")
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")
    return slug[:80].rstrip("-")
