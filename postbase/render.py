"""Turning posts into HTML pages and feeds.

Nothing here touches the filesystem (apart from loading templates) - see svc
for that.

"""

import json
import functools
from typing import Any, Dict, Optional, Sequence

from feedgen.feed import FeedGenerator
from jinja2 import Environment, PackageLoader, select_autoescape

from .config import Config
from .frontmatter import slugify
from .markdown import render_markdown, table_of_contents
from .value_objs import BuildMode, Post
from .version import get_version


@functools.lru_cache
def get_jinja_env() -> Environment:
    env = Environment(
        loader=PackageLoader("postbase", "templates"),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["render_markdown"] = render_markdown
    env.globals["postbase_version"] = get_version()
    return env


def post_url(base_url: str, slug: str) -> str:
    return f"{base_url}/{slug}/"


def tag_url(base_url: str, tag: str) -> str:
    return f"{base_url}/tags/{slugify(tag)}/"


def feed_url(base_url: str) -> str:
    return f"{base_url}/posts.rss"


def _site_globals(config: Config, mode: BuildMode) -> Dict[str, Any]:
    return dict(
        site_title=config.site_title,
        base_url=config.base_url,
        language=config.language,
        feed_url=feed_url(config.base_url),
        mode=mode,
    )


def render_post_page(post: Post, config: Config, mode: BuildMode) -> str:
    url = post_url(config.base_url, post.slug)
    author = post.author or config.default_author
    template = get_jinja_env().get_template("post.html")
    return template.render(
        post=post,
        author=author,
        rendered=render_markdown(post.body),
        toc=table_of_contents(post.body),
        page_title=post.title,
        canonical_url=url,
        ld_json=make_ld_json(post, url, author),
        tag_url=functools.partial(tag_url, config.base_url),
        **_site_globals(config, mode),
    )


def render_listing_page(
    posts: Sequence[Post],
    config: Config,
    mode: BuildMode,
    tag: Optional[str] = None,
) -> str:
    """A list of posts - either all of them, or those under a tag."""
    if tag is None:
        page_title = config.site_title
        canonical_url = f"{config.base_url}/"
    else:
        page_title = f"Posts tagged '{tag}'"
        canonical_url = tag_url(config.base_url, tag)
    template = get_jinja_env().get_template("listing.html")
    return template.render(
        posts=posts,
        tag=tag,
        page_title=page_title,
        canonical_url=canonical_url,
        post_url=functools.partial(post_url, config.base_url),
        tag_url=functools.partial(tag_url, config.base_url),
        **_site_globals(config, mode),
    )


def make_feed(posts: Sequence[Post], config: Config) -> bytes:
    """An RSS feed of the given posts.  Drafts are never included, even in
    previews - feed readers don't forget."""
    url = feed_url(config.base_url)
    fg = FeedGenerator()
    fg.id(url)
    fg.title(config.site_title)
    fg.language(config.language)
    fg.link(href=url, rel="self")
    fg.description(f"The {config.site_title} blog")

    for post in posts:
        if post.draft:
            continue
        fe = fg.add_entry(order="append")
        fe.id(post_url(config.base_url, post.slug))
        fe.title(post.title)
        fe.description(post.summary or post.description or post.title)
        fe.link(href=post_url(config.base_url, post.slug))
        fe.pubDate(post.timestamp())
        for tag in post.tags:
            fe.category(term=tag)
        author = post.author or config.default_author
        if author is not None:
            fe.author(name=author)

    return fg.rss_str(pretty=True)


def make_ld_json(post: Post, url: str, author: Optional[str]) -> str:
    document: Dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": post.title,
        "url": url,
        "keywords": post.keywords,
        "mainEntityOfPage": url,
        "datePublished": post.timestamp().isoformat(),
        "dateCreated": post.timestamp().isoformat(),
    }
    if post.description is not None:
        document["description"] = post.description
    elif post.summary is not None:
        document["description"] = post.summary
    if author is not None:
        document["author"] = {"@type": "Person", "name": author}
    # it goes inside a <script> tag
    return json.dumps(document, indent=4).replace("</", "<\\/")
