"""Command-line interface for docket-pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict

from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .auth import AuthContext
from .authority import build_scorer
from .config import Settings, get_settings
from .errors import DocketPipelineError, UpstreamError
from .models import ResolutionResult
from .pipeline import ReportPipeline
from .resolver import CaseResolver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    p = argparse.ArgumentParser(
        prog="docket-pipeline",
        description="Resolve dockets, score court authority, and run the report pipeline.",
    )
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    # --- resolve ---
    res = sub.add_parser("resolve", help="Resolve a case number to its docket and documents")
    res.add_argument("case_number", help="Docket number, e.g. 2:24-cv-10001")
    res.add_argument(
        "--court",
        action="append",
        default=[],
        dest="courts",
        help="Court id filter; repeat for several (OR semantics)",
    )
    res.add_argument("--region", default=None, help="Region preset used when no --court is given")
    res.add_argument("--limit", default=None, help="Page size, clamped to 1-50 (default 10)")
    res.add_argument(
        "--attempts",
        type=int,
        default=None,
        help="Total attempts on upstream 5xx/transport failures (default from settings)",
    )

    # --- score ---
    sc = sub.add_parser("score", help="Print the authority record for court ids")
    sc.add_argument("court_ids", nargs="+", help="Court ids, e.g. mich ca6")

    # --- research ---
    rs = sub.add_parser("research", help="Run materialize-and-run then execute")
    rs.add_argument("--body", default="{}", help="JSON body forwarded to both stages")
    rs.add_argument("--cookie", default=None, help="Session cookie to forward")
    rs.add_argument("--ingest-secret", default=None, help="x-ingest-secret to forward")

    # --- serve ---
    sv = sub.add_parser("serve", help="Run the HTTP API")
    sv.add_argument("--host", default=None, help="Bind host (default from settings)")
    sv.add_argument("--port", type=int, default=None, help="Bind port (default from settings)")

    return p


def _configure_logging(verbose: bool) -> None:
    """Set up root logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamError) and exc.status >= 500


def _retry_decorator(settings: Settings, attempts: int):
    return retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(
            multiplier=settings.backoff_multiplier,
            min=settings.backoff_min,
            max=settings.backoff_max,
        ),
        reraise=True,
    )


def resolve_with_retry(resolver: CaseResolver, args: argparse.Namespace) -> ResolutionResult:
    """Re-invoke the (idempotent) resolve operation on 5xx upstream failures."""
    attempts = args.attempts if args.attempts is not None else resolver.settings.max_attempts

    @_retry_decorator(resolver.settings, attempts)
    def _do_resolve() -> ResolutionResult:
        return resolver.resolve(args.case_number, args.courts, args.limit, region=args.region)

    return _do_resolve()


def _print(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2))


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    s = get_settings()

    try:
        if args.cmd == "score":
            scorer = build_scorer(s.authority_table_path)
            _print({c: scorer.score(c).to_wire() for c in args.court_ids})
            return 0

        if args.cmd == "resolve":
            resolver = CaseResolver(s, scorer=build_scorer(s.authority_table_path))
            _print(resolve_with_retry(resolver, args).to_wire())
            return 0

        if args.cmd == "research":
            try:
                body = json.loads(args.body)
            except json.JSONDecodeError as exc:
                logger.error("--body is not valid JSON: %s", exc)
                return 2
            auth = AuthContext(cookie=args.cookie, ingest_secret=args.ingest_secret)
            resolver = CaseResolver(s, scorer=build_scorer(s.authority_table_path))
            result = ReportPipeline(s, resolver=resolver).run(body, auth)
            _print(result.to_wire())
            return 0

        if args.cmd == "serve":
            from .app import create_app

            app = create_app(s)
            app.run(host=args.host or s.host, port=args.port or s.port)
            return 0
    except DocketPipelineError as exc:
        logger.error("%s failed: %s", args.cmd, exc.message)
        _print(exc.to_payload())
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
