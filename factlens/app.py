from __future__ import annotations

import logging
import signal
import sys

from flask import Flask
from flask_cors import CORS

from factlens.api.routes import api
from factlens.config.logging import setup_logging
from factlens.config.settings import Settings, load_settings
from factlens.generators.report import ReportPaginator
from factlens.pipeline import AnalysisPipeline
from factlens.processors.invoker import AnalysisInvoker, create_client
from factlens.processors.normalizer import MediaNormalizer
from factlens.session import AnalysisSession
from factlens.storage.history import HistoryStore

logger = logging.getLogger(__name__)


def build_session(settings: Settings, client=None) -> AnalysisSession:
    if client is None:
        client = create_client(settings.gemini_api_key)

    invoker = AnalysisInvoker(
        client,
        standard_model=settings.standard_model,
        deep_model=settings.deep_model,
        timeout_seconds=settings.request_timeout_seconds,
    )
    normalizer = MediaNormalizer(
        max_pdf_pages=settings.max_pdf_pages,
        max_upload_bytes=settings.max_upload_bytes,
    )
    history = HistoryStore(settings.history_file, capacity=settings.history_capacity)
    return AnalysisSession(AnalysisPipeline(invoker, normalizer=normalizer), history=history)


def create_flask_app(
    settings: Settings,
    session: AnalysisSession,
    history: HistoryStore | None = None,
    paginator: ReportPaginator | None = None,
) -> Flask:
    app = Flask(__name__)
    CORS(app, resources={r"/*": {"origins": settings.cors_origins}})

    # Multipart overhead on top of the file itself.
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes + 1024 * 1024
    app.config["SETTINGS"] = settings
    app.config["ANALYSIS_SESSION"] = session
    app.config["HISTORY"] = history if history is not None else session.history
    app.config["PAGINATOR"] = paginator or ReportPaginator()

    app.register_blueprint(api)
    return app


def main() -> None:
    setup_logging(log_file=None)
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info("Starting Instant Fact-Check Lens...")

    session = build_session(settings)
    app = create_flask_app(settings, session)

    from wsgiref.simple_server import make_server

    server = make_server(settings.host, settings.port, app)

    def _shutdown(sig: int, _frame: object) -> None:
        logger.info("Received signal %s, shutting down...", sig)
        server.server_close()
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    logger.info("Flask server starting on http://%s:%d", settings.host, settings.port)
    try:
        server.serve_forever()
    except Exception as exc:
        logger.error("Server loop error: %s", exc)
        raise
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
