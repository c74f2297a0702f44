"""Two-stage report pipeline: materialize-and-run, then execute.

Stage 2 needs the analysis identifier produced by stage 1, so the stages are
strictly chained. Any stage failure ends the run; nothing is retried.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .auth import AuthContext, Authenticator, CredentialPresenceAuthenticator
from .config import Settings
from .errors import DocketPipelineError, PipelineContractError, UnauthenticatedError, UpstreamError
from .models import PipelineResult, PipelineStage
from .resolver import CaseResolver
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)

STAGE_MATERIALIZE = "audit/run/materialize-and-run"
STAGE_EXECUTE = "audit/execute"

_TRANSITIONS = {
    PipelineStage.PENDING_MATERIALIZE: {PipelineStage.MATERIALIZED, PipelineStage.FAILED},
    PipelineStage.MATERIALIZED: {PipelineStage.EXECUTED, PipelineStage.FAILED},
    PipelineStage.EXECUTED: set(),
    PipelineStage.FAILED: set(),
}


def extract_first(payload: Any, aliases: Sequence[str]) -> Optional[str]:
    """Return the first non-empty string or number found under ``aliases``.

    Zero and non-finite numbers count as empty.
    """
    if not isinstance(payload, dict):
        return None
    for key in aliases:
        v = payload.get(key)
        if isinstance(v, bool):
            continue
        if isinstance(v, (int, float)):
            if v == 0 or not math.isfinite(v):
                continue
            return str(v)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def extract_markdown(payload: Any, aliases: Sequence[str]) -> str:
    if not isinstance(payload, dict):
        return ""
    for key in aliases:
        v = payload.get(key)
        if isinstance(v, str) and v:
            return v
    return ""


@dataclass
class PipelineRun:
    """State of one run. ``analysis_id`` can be set once only."""

    payload: Dict[str, Any]
    stage: PipelineStage = PipelineStage.PENDING_MATERIALIZE
    analysis_id: Optional[str] = None
    history: List[PipelineStage] = field(default_factory=list)

    def _advance(self, target: PipelineStage) -> None:
        if target not in _TRANSITIONS[self.stage]:
            raise PipelineContractError(
                f"Illegal pipeline transition {self.stage.value} -> {target.value}"
            )
        self.history.append(self.stage)
        self.stage = target
        logger.debug("Pipeline stage -> %s", target.value)

    def mark_materialized(self, analysis_id: str) -> None:
        if self.analysis_id is not None:
            raise PipelineContractError("analysisId is already set for this run")
        self._advance(PipelineStage.MATERIALIZED)
        self.analysis_id = analysis_id

    def mark_executed(self) -> None:
        self._advance(PipelineStage.EXECUTED)

    def mark_failed(self) -> None:
        if self.stage in (PipelineStage.EXECUTED, PipelineStage.FAILED):
            return
        self._advance(PipelineStage.FAILED)

    def execute_body(self) -> Dict[str, Any]:
        if self.analysis_id is None:
            raise PipelineContractError("execute requested before materialize produced an analysisId")
        return {**self.payload, "analysisId": self.analysis_id}


class ReportPipeline:
    """Sequence the report backend's materialize-and-run and execute calls."""

    def __init__(
        self,
        settings: Settings,
        *,
        authenticator: Optional[Authenticator] = None,
        resolver: Optional[CaseResolver] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.authenticator = authenticator or CredentialPresenceAuthenticator()
        self.resolver = resolver
        self.client = UpstreamClient(settings, transport=transport)

    def _call_stage(self, stage: str, body: Dict[str, Any], auth: AuthContext) -> Any:
        headers = {"content-type": "application/json"}
        headers.update(auth.forward_headers())

        result = self.client.post_json(self.settings.backend_url(stage), body, headers=headers)
        if not result.ok:
            logger.error("Stage %s failed (HTTP %d): %s", stage, result.status, result.error)
            message = result.error or "Upstream error"
            if isinstance(result.data, dict) and isinstance(result.data.get("error"), str):
                message = result.data["error"]
            raise UpstreamError(
                message,
                status=result.status,
                details=result.details,
                where=stage,
                upstream=result.data,
            )
        return result.data

    def _sibling_resolution(self, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.resolver is None or not body.get("caseNumber"):
            return None
        try:
            resolution = self.resolver.resolve(
                body.get("caseNumber"),
                body.get("courts"),
                body.get("limit"),
                region=body.get("region") if isinstance(body.get("region"), str) else None,
            )
        except DocketPipelineError as exc:
            logger.warning("Sibling resolution failed: %s", exc.message)
            return exc.to_payload()
        return resolution.to_wire()

    def run(self, body: Any, auth: AuthContext) -> PipelineResult:
        """Run both stages for ``body`` on behalf of the caller in ``auth``.

        Raises:
            UnauthenticatedError: No identity for the caller; nothing is called.
            UpstreamError: A stage failed; ``where`` names it.
            PipelineContractError: Stage 1 succeeded without an analysis id.
        """
        identity = self.authenticator.authenticate(auth)
        if identity is None:
            raise UnauthenticatedError("Unauthorized")

        payload = body if isinstance(body, dict) else {}
        run = PipelineRun(payload=payload)
        logger.info("Starting report pipeline (auth mode=%s)", identity.mode)

        try:
            materialized = self._call_stage(STAGE_MATERIALIZE, payload, auth)
            analysis_id = extract_first(materialized, self.settings.analysis_id_aliases)
            if not analysis_id:
                raise PipelineContractError(
                    "materialize-and-run succeeded but no analysisId was returned",
                    where=STAGE_MATERIALIZE,
                    raw=materialized,
                )
            run.mark_materialized(analysis_id)
            logger.info("Materialized analysis %s", analysis_id)

            executed = self._call_stage(STAGE_EXECUTE, run.execute_body(), auth)
            run.mark_executed()
        except DocketPipelineError:
            run.mark_failed()
            raise

        logger.info("Executed analysis %s", run.analysis_id)
        audit = executed if isinstance(executed, dict) else {}
        report = audit.get("report")
        if report is None:
            report = audit.get("result")
        return PipelineResult(
            analysis_id=run.analysis_id,
            audit=executed,
            markdown=extract_markdown(audit, self.settings.markdown_aliases),
            report=report,
            educational_report=audit.get("educationalReport"),
            resolution=self._sibling_resolution(payload),
        )
