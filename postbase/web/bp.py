"""Routes of the preview server.

Content is re-read on every request so that edits show up on refresh.

"""

from dataclasses import replace
from pathlib import Path

from flask import Blueprint, Response, current_app, make_response, request

from postbase import exc, svc
from postbase.config import Config, get_config
from postbase.frontmatter import slugify
from postbase.render import make_feed, render_listing_page, render_post_page
from postbase.value_objs import BuildMode, ContentSet

bp = Blueprint("posts", __name__)


def get_mode() -> BuildMode:
    return current_app.config["POSTBASE_MODE"]


def get_content_set() -> ContentSet:
    content_dir: Path = current_app.config["POSTBASE_CONTENT_DIR"]
    return svc.load_posts(content_dir, get_config().normalize_encoding)


def request_config() -> Config:
    """The config, but with links pointing at this server rather than the
    real site."""
    return replace(get_config(), base_url=request.url_root.rstrip("/"))


def html_response(html: str) -> Response:
    response = make_response(html)
    response.mimetype = "text/html"
    return response


@bp.get("/")
def index() -> Response:
    mode = get_mode()
    posts = svc.select_posts(get_content_set().posts, mode)
    return html_response(render_listing_page(posts, request_config(), mode))


@bp.get("/<slug>/")
def post(slug: str) -> Response:
    mode = get_mode()
    post_obj = svc.get_post(get_content_set(), slug, mode)
    return html_response(render_post_page(post_obj, request_config(), mode))


@bp.get("/tags/<tag_slug>/")
def tag(tag_slug: str) -> Response:
    mode = get_mode()
    posts = svc.select_posts(get_content_set().posts, mode)
    for tag_name, tagged in svc.posts_by_tag(posts).items():
        if slugify(tag_name) == tag_slug:
            return html_response(
                render_listing_page(tagged, request_config(), mode, tag=tag_name)
            )
    raise exc.TagDoesNotExistException(tag_slug)


@bp.get("/posts.rss")
def rss() -> Response:
    posts = svc.select_posts(get_content_set().posts, get_mode())
    return Response(make_feed(posts, request_config()), mimetype="application/rss+xml")
