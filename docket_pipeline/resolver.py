"""Case resolution: case number -> canonical docket, RECAP documents, authority."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from .authority import AuthorityScorer
from .config import Settings
from .courts import normalize_courts, region_courts
from .errors import ClientInputError, ConfigurationError, UpstreamError
from .models import Docket, Provenance, RecapDocument, ResolutionResult
from .upstream import UpstreamClient, results_list

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 50

DOWNLOAD_FIELDS = ("filepath_local", "filepath_ia", "filepath_s3")


def clamp_limit(value: Any) -> int:
    """Clamp a caller-supplied page size into [1, 50]; default 10.

    Fractions are truncated. Booleans, non-numeric strings and non-finite
    numbers fall back to the default.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_LIMIT
    if isinstance(value, int):
        return max(MIN_LIMIT, min(MAX_LIMIT, value))
    try:
        n = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_LIMIT
    if not math.isfinite(n):
        return DEFAULT_LIMIT
    return max(MIN_LIMIT, min(MAX_LIMIT, int(n)))


def _str_or_none(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None


def _id_or_none(v: Any) -> Optional[Union[int, str]]:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, str)):
        return v
    return None


def _first_non_empty(item: Dict[str, Any], fields: Tuple[str, ...]) -> Optional[str]:
    for f in fields:
        v = item.get(f)
        if isinstance(v, str) and v:
            return v
    return None


class CaseResolver:
    """Look up a docket by case number and enrich it with filed documents."""

    def __init__(
        self,
        settings: Settings,
        *,
        scorer: Optional[AuthorityScorer] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.scorer = scorer or AuthorityScorer()
        self.client = UpstreamClient(settings, transport=transport)

    def _absolute_url(self, path: Any) -> str:
        if not isinstance(path, str) or not path:
            return ""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.settings.courtlistener_site.rstrip('/')}/{path.lstrip('/')}"

    def _normalize_docket(self, item: Dict[str, Any]) -> Docket:
        court_id = _str_or_none(item.get("court_id"))
        return Docket(
            id=_id_or_none(item.get("id")),
            case_name=_str_or_none(item.get("case_name")),
            court_id=court_id,
            docket_number=_str_or_none(item.get("docket_number")),
            date_filed=_str_or_none(item.get("date_filed")),
            url=self._absolute_url(item.get("absolute_url")),
            authority=self.scorer.score(court_id) if court_id else None,
        )

    def _normalize_recap(self, item: Dict[str, Any]) -> RecapDocument:
        return RecapDocument(
            id=_id_or_none(item.get("id")),
            description=_str_or_none(item.get("description")),
            document_number=_id_or_none(item.get("document_number")),
            attachment_number=_id_or_none(item.get("attachment_number")),
            date_filed=_str_or_none(item.get("date_filed")),
            url=self._absolute_url(item.get("absolute_url")),
            download_url=_first_non_empty(item, DOWNLOAD_FIELDS),
        )

    def _effective_courts(self, courts: Any, region: Optional[str]) -> List[str]:
        explicit = normalize_courts(courts)
        if explicit or not region:
            return explicit
        preset = region_courts(region)
        if preset is None:
            logger.warning("Ignoring unknown region %r", region)
            return []
        return preset

    def _fetch_recap(self, docket_id: Union[int, str], limit: int) -> List[RecapDocument]:
        """Best-effort document lookup; any failure becomes an empty list."""
        result = self.client.fetch_json(
            self.settings.courtlistener_url("recap-documents/"),
            self.settings.courtlistener_token or "",
            params=[("page_size", str(limit)), ("docket", str(docket_id))],
        )
        if not result.ok:
            logger.warning(
                "RECAP lookup failed for docket %s (HTTP %d: %s); continuing without documents",
                docket_id, result.status, result.error,
            )
            return []
        return [self._normalize_recap(d) for d in results_list(result.data) if isinstance(d, dict)]

    def resolve(
        self,
        case_number: Any,
        courts: Any = None,
        limit: Any = None,
        *,
        region: Optional[str] = None,
    ) -> ResolutionResult:
        """Resolve ``case_number`` to its canonical docket and documents.

        Raises:
            ConfigurationError: No CourtListener token is configured.
            ClientInputError: The case number is missing or blank.
            UpstreamError: The docket lookup itself failed (``kind='docket_lookup'``).
        """
        if not self.settings.has_token:
            raise ConfigurationError("Missing CourtListener token (DOCKET_COURTLISTENER_TOKEN)")

        case_number = case_number.strip() if isinstance(case_number, str) else ""
        if not case_number:
            raise ClientInputError("Missing caseNumber")

        page_size = clamp_limit(limit)
        court_ids = self._effective_courts(courts, region)

        params: List[Tuple[str, str]] = [
            ("docket_number", case_number),
            ("page_size", str(page_size)),
        ]
        params.extend(("court", c) for c in court_ids)

        logger.info(
            "Resolving case %s (courts=%s, limit=%d)",
            case_number, ",".join(court_ids) or "-", page_size,
        )
        dockets = self.client.fetch_json(
            self.settings.courtlistener_url("dockets/"),
            self.settings.courtlistener_token or "",
            params=params,
        )
        if not dockets.ok:
            raise UpstreamError(
                dockets.error or "Upstream error",
                status=dockets.status,
                details=dockets.details,
                kind="docket_lookup",
                http_status=502,
            )

        first = next(iter(results_list(dockets.data)), None)
        docket = self._normalize_docket(first) if isinstance(first, dict) else None

        recap: List[RecapDocument] = []
        if docket is not None and docket.id is not None and docket.id != "":
            recap = self._fetch_recap(docket.id, page_size)

        logger.info(
            "Resolved case %s: docket=%s, %d document(s)",
            case_number, docket.id if docket else None, len(recap),
        )
        return ResolutionResult(
            case_number=case_number,
            courts=court_ids,
            docket=docket,
            recap=recap,
            provenance=Provenance(fetched_at=datetime.now(timezone.utc)),
        )
