"""Court authority scoring.

Maps a court identifier to a score, a bindingness flag and a court level.
The seed table covers Michigan and the federal courts sitting over it; a JSON
file can extend it without code changes.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import CourtAuthority

logger = logging.getLogger(__name__)

DEFAULT_AUTHORITY = CourtAuthority(score=50, binding=False, level="unknown")

SEED_AUTHORITY_TABLE: Dict[str, CourtAuthority] = {
    "mich": CourtAuthority(score=95, binding=True, level="supreme"),
    "michctapp": CourtAuthority(score=85, binding=True, level="appellate"),
    "mied": CourtAuthority(score=75, binding=False, level="federal_district"),
    "miwd": CourtAuthority(score=75, binding=False, level="federal_district"),
    "ca6": CourtAuthority(score=80, binding=False, level="federal_appellate"),
}


def _normalize_id(court_id: Any) -> str:
    if not isinstance(court_id, str):
        return ""
    return court_id.strip().lower()


class AuthorityScorer:
    """Total, case-insensitive lookup over an authority table."""

    def __init__(self, table: Optional[Mapping[str, CourtAuthority]] = None) -> None:
        source = SEED_AUTHORITY_TABLE if table is None else table
        self._table: Dict[str, CourtAuthority] = {
            _normalize_id(k): v for k, v in source.items()
        }

    def score(self, court_id: Any) -> CourtAuthority:
        return self._table.get(_normalize_id(court_id), DEFAULT_AUTHORITY)

    def rank_courts(self, court_ids: Iterable[str]) -> List[str]:
        """Order court ids by descending score; ties keep their input order."""
        ids = list(court_ids)
        return sorted(ids, key=lambda c: -self.score(c).score)

    @property
    def court_ids(self) -> List[str]:
        return sorted(self._table)


def load_authority_table(path: Path) -> Dict[str, CourtAuthority]:
    """Read a JSON authority file and merge it over the seed table.

    The file holds an object of ``{courtId: {score, binding, level}}``.
    Entries override or add to the seed; seed entries are never removed.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a JSON object or an entry is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Authority table not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in authority table {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"Authority table {path} must be a JSON object")

    table = dict(SEED_AUTHORITY_TABLE)
    for court_id, entry in raw.items():
        cid = _normalize_id(court_id)
        if not cid:
            raise ValueError(f"Empty court id in authority table {path}")
        table[cid] = CourtAuthority.model_validate(entry)

    logger.info("Loaded %d authority entries from %s", len(raw), path)
    return table


def build_scorer(path: Optional[Path] = None) -> AuthorityScorer:
    """Build a scorer from the seed table, extended by ``path`` when given."""
    if path is None:
        return AuthorityScorer()
    return AuthorityScorer(load_authority_table(path))


_default_scorer = AuthorityScorer()


def score(court_id: Any) -> CourtAuthority:
    """Score a court against the seed table."""
    return _default_scorer.score(court_id)
