"""Error taxonomy shared by the resolver, the pipeline and the HTTP surface."""

from __future__ import annotations

from typing import Any, Dict, Optional


class DocketPipelineError(Exception):
    """Base class for failures that are rendered to callers as JSON."""

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message}


class ConfigurationError(DocketPipelineError):
    """Missing credentials or base URLs. Never retried."""

    http_status = 500


class ClientInputError(DocketPipelineError):
    """The caller sent something unusable, e.g. an empty case number."""

    http_status = 400


class UnauthenticatedError(DocketPipelineError):
    """The auth collaborator yielded no identity for the caller."""

    http_status = 401


class UpstreamError(DocketPipelineError):
    """An external dependency rejected a call or returned an unusable body.

    ``kind`` tags failures of the resolver's lookups (``docket_lookup``),
    ``where`` names the failing pipeline stage (``audit/execute``).
    """

    def __init__(
        self,
        message: str,
        *,
        status: int,
        details: Optional[str] = None,
        kind: Optional[str] = None,
        where: Optional[str] = None,
        upstream: Any = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.details = details
        self.kind = kind
        self.where = where
        self.upstream = upstream
        self.http_status = http_status if http_status is not None else status

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.kind:
            payload["kind"] = self.kind
        if self.where:
            payload["where"] = self.where
        payload["status"] = self.status
        if self.details:
            payload["details"] = self.details
        if self.upstream is not None:
            payload["upstream"] = self.upstream
        return payload


class PipelineContractError(DocketPipelineError):
    """A stage reported success but its payload breaks the pipeline contract."""

    http_status = 500

    def __init__(self, message: str, *, where: Optional[str] = None, raw: Any = None) -> None:
        super().__init__(message)
        self.where = where
        self.raw = raw

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.where:
            payload["where"] = self.where
        payload["raw"] = self.raw
        return payload
