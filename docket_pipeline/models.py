"""Pydantic models shared across the resolver, the pipeline and the HTTP surface."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CourtLevel = Literal[
    "supreme", "appellate", "federal_district", "federal_appellate", "unknown"
]

RECAP_SOURCE = "courtlistener_recap"
DOCKET_PROVENANCE = "courtlistener_dockets"
RECAP_PROVENANCE = "courtlistener_recap_documents"


class WireModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CourtAuthority(WireModel):
    """Precedential weight of a single court."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    score: int = Field(ge=0, le=100)
    binding: bool
    level: CourtLevel


class Docket(WireModel):
    """Canonical case record from the court-records upstream."""

    id: Optional[Union[int, str]] = None
    case_name: Optional[str] = None
    court_id: Optional[str] = None
    docket_number: Optional[str] = None
    date_filed: Optional[str] = None
    url: Optional[str] = None
    authority: Optional[CourtAuthority] = None


class RecapDocument(WireModel):
    """A filed document attached to a docket."""

    id: Optional[Union[int, str]] = None
    description: Optional[str] = None
    document_number: Optional[Union[int, str]] = None
    attachment_number: Optional[Union[int, str]] = None
    date_filed: Optional[str] = None
    url: Optional[str] = None
    download_url: Optional[str] = None
    source: str = RECAP_SOURCE


class Provenance(WireModel):
    docket_source: str = DOCKET_PROVENANCE
    recap_source: str = RECAP_PROVENANCE
    fetched_at: datetime


class ResolutionResult(WireModel):
    """Docket plus documents for one case number."""

    ok: bool = True
    kind: str = "resolve"
    case_number: str
    courts: List[str] = Field(default_factory=list)
    docket: Optional[Docket] = None
    recap: List[RecapDocument] = Field(default_factory=list)
    provenance: Provenance


class UpstreamResult(WireModel):
    """Outcome of a single outbound call, successful or not."""

    ok: bool
    status: int
    url: str
    fetched_at: datetime
    data: Any = None
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.ok


class PipelineStage(str, Enum):
    PENDING_MATERIALIZE = "pending_materialize"
    MATERIALIZED = "materialized"
    EXECUTED = "executed"
    FAILED = "failed"


class PipelineResult(WireModel):
    """Final output of a materialize-and-run / execute run."""

    ok: bool = True
    analysis_id: str
    audit: Any = None
    markdown: str = ""
    report: Any = None
    educational_report: Any = None
    resolution: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        payload = super().to_wire()
        if payload.get("resolution") is None:
            payload.pop("resolution", None)
        return payload
