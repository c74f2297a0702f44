"""JSON-over-HTTP surface: resolve, research, authority and health routes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .auth import AuthContext, Authenticator
from .authority import AuthorityScorer, build_scorer
from .config import Settings, get_settings
from .courts import known_regions
from .errors import DocketPipelineError
from .pipeline import STAGE_EXECUTE, STAGE_MATERIALIZE, ReportPipeline
from .resolver import CaseResolver

logger = logging.getLogger(__name__)


def _json(status: int, payload: Dict[str, Any]):
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _read_body() -> Dict[str, Any]:
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


def create_app(
    settings: Optional[Settings] = None,
    *,
    scorer: Optional[AuthorityScorer] = None,
    authenticator: Optional[Authenticator] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Flask:
    """Build the Flask app with components wired from ``settings``."""
    s = settings or get_settings()
    sc = scorer or build_scorer(s.authority_table_path)
    resolver = CaseResolver(s, scorer=sc, transport=transport)
    pipeline = ReportPipeline(
        s, authenticator=authenticator, resolver=resolver, transport=transport
    )

    app = Flask(__name__)

    @app.errorhandler(DocketPipelineError)
    def handle_pipeline_error(exc: DocketPipelineError):
        return _json(exc.http_status, exc.to_payload())

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        resp = _json(exc.code or 500, {"ok": False, "error": exc.description or exc.name})
        allowed = getattr(exc, "valid_methods", None)
        if allowed:
            resp.headers["Allow"] = ", ".join(allowed)
        return resp

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _json(500, {"ok": False, "error": "Internal error"})

    @app.get("/api/health")
    def health():
        return _json(200, {"ok": True, "ts": datetime.now(timezone.utc).isoformat()})

    @app.post("/api/resolve")
    def resolve():
        body = _read_body()
        region = body.get("region")
        result = resolver.resolve(
            body.get("caseNumber"),
            body.get("courts"),
            body.get("limit"),
            region=region if isinstance(region, str) else None,
        )
        return _json(200, result.to_wire())

    @app.post("/api/research")
    def research():
        auth = AuthContext.from_headers(request.headers)
        result = pipeline.run(_read_body(), auth)
        return _json(200, result.to_wire())

    @app.get("/api/research")
    def research_usage():
        return _json(200, {
            "ok": True,
            "route": "/api/research",
            "stages": [STAGE_MATERIALIZE, STAGE_EXECUTE],
            "analysisIdAliases": list(s.analysis_id_aliases),
            "note": "POST a JSON body; it is forwarded to materialize-and-run, then execute.",
        })

    @app.get("/api/authority/<court_id>")
    def authority(court_id: str):
        return _json(200, {
            "ok": True,
            "courtId": court_id,
            "authority": sc.score(court_id).to_wire(),
            "regions": sorted(known_regions()),
        })

    logger.info("App ready (courtlistener=%s, backend=%s)", s.courtlistener_base, s.report_backend_base)
    return app
