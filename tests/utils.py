from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from lxml import etree
from lxml.cssselect import CSSSelector

from postbase.frontmatter import post_to_text
from postbase.value_objs import Post

REPO_CONTENT_DIR = Path(__file__).parent.parent / "content"

KAFKA_POST_SLUG = "custom-kafka-health-indicator-spring-boot"

KAFKA_POST_TITLE = "Writing a Custom Kafka Health Indicator in Spring Boot"


def make_post(**overrides) -> Post:
    kwargs = {
        "date": datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc),
        "draft": False,
        "title": "Hello, World",
        "tags": ["meta", "python"],
        "slug": "hello-world",
        "keywords": ["hello", "first post"],
        "body": "\nHi, so about *postbase*...\n",
        "summary": "The first post",
        "description": "The first post on this blog",
        "author": "A. N. Author",
    }
    kwargs.update(**overrides)
    return Post(**kwargs)  # type: ignore


def write_post(content_dir: Path, post: Post, filename: Optional[str] = None) -> Path:
    path = content_dir / "posts" / (filename or f"{post.slug}.md")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as post_f:
        post_f.write(post_to_text(post))
    return path


def write_text(content_dir: Path, filename: str, text: str) -> Path:
    path = content_dir / "posts" / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as post_f:
        post_f.write(text)
    return path


def parse_html(html) -> etree._Element:
    if isinstance(html, str):
        html = html.encode("utf-8")
    return etree.fromstring(html, etree.HTMLParser())


def parse_html_file(path: Path) -> etree._Element:
    with open(path, "rb") as html_f:
        return parse_html(html_f.read())


def page_title(root: etree._Element) -> str:
    (title,) = CSSSelector("title")(root)
    return title.text


def listed_slugs(root: etree._Element):
    return [li.attrib["data-slug"] for li in CSSSelector("li.post-entry")(root)]
