"""Tests for the two-stage report pipeline."""

import json

import httpx
import pytest

from conftest import DOCKETS_PATH, EXECUTE_PATH, MATERIALIZE_PATH, RECAP_PATH
from docket_pipeline.auth import AuthContext
from docket_pipeline.errors import PipelineContractError, UnauthenticatedError, UpstreamError
from docket_pipeline.models import PipelineStage
from docket_pipeline.pipeline import (
    STAGE_MATERIALIZE,
    PipelineRun,
    ReportPipeline,
    extract_first,
    extract_markdown,
)
from docket_pipeline.resolver import CaseResolver

USER = AuthContext(cookie="sb-access-token=abc")
BODY = {"kind": "case_fact_audit", "document_id": "doc-1", "tier": "pro"}
ALIASES = ["analysisId", "id", "runId", "uuid", "analysis_id"]


def _pipeline(settings, upstream, **kwargs) -> ReportPipeline:
    return ReportPipeline(settings, transport=upstream.transport, **kwargs)


def _body(request: httpx.Request) -> dict:
    return json.loads(request.content)


class TestExtractFirst:
    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"analysisId": "a1", "id": "x"}, "a1"),
            ({"id": "abc"}, "abc"),
            ({"analysisId": "", "runId": "r9"}, "r9"),
            ({"analysisId": "   ", "uuid": "u-1"}, "u-1"),
            ({"analysis_id": "snake"}, "snake"),
            ({"id": 42}, "42"),
            ({"id": 0, "uuid": "u"}, "u"),
            ({"analysisId": float("nan"), "id": "x"}, "x"),
            ({"analysisId": float("inf")}, None),
            ({"id": 0.0}, None),
            ({"id": None, "uuid": False, "analysis_id": "last"}, "last"),
            ({"other": "x"}, None),
            ({}, None),
            ([], None),
            (None, None),
        ],
    )
    def test_alias_precedence(self, payload, expected) -> None:
        assert extract_first(payload, ALIASES) == expected


class TestExtractMarkdown:
    def test_order(self) -> None:
        aliases = ["markdown", "reportMarkdown", "educationMarkdown"]
        assert extract_markdown({"reportMarkdown": "# R", "educationMarkdown": "# E"}, aliases) == "# R"
        assert extract_markdown({"markdown": "", "educationMarkdown": "# E"}, aliases) == "# E"
        assert extract_markdown({}, aliases) == ""
        assert extract_markdown("nope", aliases) == ""


class TestPipelineRun:
    def test_happy_transitions(self) -> None:
        run = PipelineRun(payload={"a": 1})
        assert run.stage is PipelineStage.PENDING_MATERIALIZE
        run.mark_materialized("id-1")
        assert run.stage is PipelineStage.MATERIALIZED
        assert run.execute_body() == {"a": 1, "analysisId": "id-1"}
        run.mark_executed()
        assert run.stage is PipelineStage.EXECUTED
        assert run.history == [PipelineStage.PENDING_MATERIALIZE, PipelineStage.MATERIALIZED]

    def test_analysis_id_is_immutable(self) -> None:
        run = PipelineRun(payload={})
        run.mark_materialized("id-1")
        with pytest.raises(PipelineContractError):
            run.mark_materialized("id-2")
        assert run.analysis_id == "id-1"

    def test_execute_before_materialize(self) -> None:
        run = PipelineRun(payload={})
        with pytest.raises(PipelineContractError):
            run.mark_executed()
        with pytest.raises(PipelineContractError):
            run.execute_body()

    def test_failed_is_absorbing(self) -> None:
        run = PipelineRun(payload={})
        run.mark_failed()
        assert run.stage is PipelineStage.FAILED
        run.mark_failed()
        with pytest.raises(PipelineContractError):
            run.mark_materialized("late")

    def test_payload_not_mutated(self) -> None:
        payload = {"a": 1}
        run = PipelineRun(payload=payload)
        run.mark_materialized("x")
        run.execute_body()
        assert payload == {"a": 1}


class TestReportPipeline:
    def test_alias_fallback_and_merge(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"ok": True, "id": "abc"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={
            "ok": True,
            "reportMarkdown": "# Findings",
            "result": {"findings": []},
            "educationalReport": {"sections": 2},
        }))

        result = _pipeline(settings, upstream).run(BODY, USER)

        assert result.analysis_id == "abc"
        assert _body(upstream.calls(MATERIALIZE_PATH)[0]) == BODY
        assert _body(upstream.calls(EXECUTE_PATH)[0]) == {**BODY, "analysisId": "abc"}
        assert result.markdown == "# Findings"
        assert result.report == {"findings": []}
        assert result.educational_report == {"sections": 2}
        assert result.audit["ok"] is True

    def test_report_preferred_over_result(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "a"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={"report": {"r": 1}, "result": {"r": 2}}))
        result = _pipeline(settings, upstream).run({}, USER)
        assert result.report == {"r": 1}
        assert result.markdown == ""
        assert result.educational_report is None

    def test_wire_format(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "a"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={"markdown": "m"}))
        wire = _pipeline(settings, upstream).run({}, USER).to_wire()
        assert wire == {
            "ok": True,
            "analysisId": "a",
            "audit": {"markdown": "m"},
            "markdown": "m",
            "report": None,
            "educationalReport": None,
        }

    def test_missing_identifier_is_fatal(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"ok": True, "status": "queued"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={}))

        with pytest.raises(PipelineContractError) as info:
            _pipeline(settings, upstream).run(BODY, USER)

        assert info.value.raw == {"ok": True, "status": "queued"}
        assert info.value.http_status == 500
        assert upstream.calls(EXECUTE_PATH) == []

    def test_zero_identifier_is_fatal(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": 0}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={}))

        with pytest.raises(PipelineContractError):
            _pipeline(settings, upstream).run(BODY, USER)

        assert upstream.calls(EXECUTE_PATH) == []

    def test_stage_one_failure_short_circuits(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(402, json={
            "error": "Payment required", "checkout_url": "https://pay.test/x",
        }))

        with pytest.raises(UpstreamError) as info:
            _pipeline(settings, upstream).run(BODY, USER)

        exc = info.value
        assert exc.where == STAGE_MATERIALIZE
        assert exc.status == 402
        assert exc.http_status == 402
        assert exc.message == "Payment required"
        assert exc.upstream["checkout_url"] == "https://pay.test/x"
        assert upstream.calls(EXECUTE_PATH) == []

    def test_stage_two_failure(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "a-1", "secret": "s1"}))
        upstream.on(EXECUTE_PATH, httpx.Response(500, text="boom"))

        with pytest.raises(UpstreamError) as info:
            _pipeline(settings, upstream).run(BODY, USER)

        payload = info.value.to_payload()
        assert payload["ok"] is False
        assert payload["where"] == "audit/execute"
        assert payload["status"] == 500
        assert "analysisId" not in payload
        assert "s1" not in json.dumps(payload)

    def test_stage_bad_json(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, text="<html/>"))
        with pytest.raises(UpstreamError) as info:
            _pipeline(settings, upstream).run(BODY, USER)
        assert info.value.status == 502
        assert info.value.where == STAGE_MATERIALIZE

    def test_unauthenticated(self, settings, upstream) -> None:
        with pytest.raises(UnauthenticatedError):
            _pipeline(settings, upstream).run(BODY, AuthContext())
        assert upstream.requests == []

    def test_forwards_credentials_to_both_stages(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "a"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={}))
        auth = AuthContext(cookie="sid=1", ingest_secret="s3cret")

        _pipeline(settings, upstream).run(BODY, auth)

        for path in (MATERIALIZE_PATH, EXECUTE_PATH):
            req = upstream.calls(path)[0]
            assert req.headers["cookie"] == "sid=1"
            assert req.headers["x-ingest-secret"] == "s3cret"
            assert req.headers["content-type"] == "application/json"

    def test_non_dict_body_forwarded_as_empty(self, settings, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "a"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={}))
        _pipeline(settings, upstream).run(["not", "a", "dict"], USER)
        assert _body(upstream.calls(EXECUTE_PATH)[0]) == {"analysisId": "a"}

    def test_custom_aliases_from_settings(self, settings, upstream) -> None:
        settings.analysis_id_aliases = ["jobId"]
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "ignored", "jobId": "j-7"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={}))
        assert _pipeline(settings, upstream).run({}, USER).analysis_id == "j-7"


class TestSiblingResolution:
    def _stages_ok(self, upstream) -> None:
        upstream.on(MATERIALIZE_PATH, httpx.Response(200, json={"analysisId": "a"}))
        upstream.on(EXECUTE_PATH, httpx.Response(200, json={"markdown": "m"}))

    def test_resolution_attached(self, settings, upstream, sample_docket) -> None:
        self._stages_ok(upstream)
        upstream.on(DOCKETS_PATH, httpx.Response(200, json={"results": [sample_docket]}))
        upstream.on(RECAP_PATH, httpx.Response(200, json={"results": []}))
        resolver = CaseResolver(settings, transport=upstream.transport)

        result = _pipeline(settings, upstream, resolver=resolver).run(
            {"caseNumber": "2:24-cv-10001"}, USER
        )

        assert result.resolution["ok"] is True
        assert result.resolution["docket"]["id"] == 68571705

    def test_resolution_failure_does_not_fail_pipeline(self, settings, upstream) -> None:
        self._stages_ok(upstream)
        upstream.on(DOCKETS_PATH, httpx.Response(500, text="down"))
        resolver = CaseResolver(settings, transport=upstream.transport)

        result = _pipeline(settings, upstream, resolver=resolver).run(
            {"caseNumber": "2:24-cv-10001"}, USER
        )

        assert result.analysis_id == "a"
        assert result.resolution["ok"] is False
        assert result.resolution["kind"] == "docket_lookup"

    def test_no_case_number_no_resolution(self, settings, upstream) -> None:
        self._stages_ok(upstream)
        resolver = CaseResolver(settings, transport=upstream.transport)
        result = _pipeline(settings, upstream, resolver=resolver).run({}, USER)
        assert result.resolution is None
        assert upstream.calls(DOCKETS_PATH) == []
