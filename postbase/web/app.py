from logging import getLogger
from pathlib import Path
from typing import Optional

from flask import Flask, make_response
from flask.wrappers import Response as FlaskResponse
from werkzeug.wrappers.response import Response

from .. import exc, sentry
from ..config import get_config
from ..logging import configure_logging
from ..value_objs import BuildMode
from .bp import bp as posts_bp

logger = getLogger(__name__)

EXCEPTION_MESSAGE_CODE_MAP = {
    exc.PostDoesNotExistException: ("that post does not exist", 404),
    exc.TagDoesNotExistException: ("there are no posts with that tag", 404),
    exc.BuildFailedException: ("the content is broken, so the site can't be built", 500),
}


def init_app(
    content_dir: Optional[Path] = None, mode: BuildMode = BuildMode.PREVIEW
) -> Flask:
    config = get_config()
    configure_logging(config.log_level)
    sentry.configure_sentry()
    app = Flask(__name__)
    app.config["POSTBASE_CONTENT_DIR"] = content_dir or config.content_dir
    app.config["POSTBASE_MODE"] = mode
    logger.info(
        "serving %s (%s)", app.config["POSTBASE_CONTENT_DIR"], mode.pretty_name()
    )

    app.register_blueprint(posts_bp)

    @app.errorhandler(exc.PostbaseException)
    def handle_postbase_exceptions(e: exc.PostbaseException) -> Response:
        try:
            message, http_code = EXCEPTION_MESSAGE_CODE_MAP[e.__class__]
        except KeyError:
            # An exception we don't have a canned response for - reraise it
            raise e
        if isinstance(e, exc.BuildFailedException):
            # show the author what to fix
            body = "\n".join([message, ""] + [str(error) for error in e.errors])
        else:
            body = message
        resp = make_response(body)
        resp.mimetype = "text/plain"
        resp.status_code = http_code
        return resp

    @app.after_request
    def set_cache_control(response: FlaskResponse) -> FlaskResponse:
        # content changes whenever the author saves, so never cache
        response.cache_control.no_store = True
        return response

    return app
