"""Shared test fixtures for docket-pipeline tests."""

from typing import Any, Callable, Dict, List, Union

import httpx
import pytest

from docket_pipeline.config import Settings

CL_BASE = "https://cl.test/api/rest/v4"
CL_SITE = "https://cl.test"
BACKEND = "https://backend.test"

DOCKETS_PATH = "/api/rest/v4/dockets/"
RECAP_PATH = "/api/rest/v4/recap-documents/"
MATERIALIZE_PATH = "/api/audit/run/materialize-and-run"
EXECUTE_PATH = "/api/audit/execute"

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Routes requests by path and records every request it sees."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []

    def on(self, path: str, route: Route) -> "FakeUpstream":
        self.routes[path] = route
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"detail": "Not found."})
        if callable(route):
            return route(request)
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


def raise_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        courtlistener_base=CL_BASE,
        courtlistener_site=CL_SITE,
        courtlistener_token="test-token",
        report_backend_base=BACKEND,
        timeout_total=2.0,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def sample_docket() -> Dict[str, Any]:
    return {
        "id": 68571705,
        "case_name": "Doe v. Acme Corp",
        "court_id": "mied",
        "docket_number": "2:24-cv-10001",
        "date_filed": "2024-01-03",
        "absolute_url": "/docket/68571705/doe-v-acme-corp/",
    }


@pytest.fixture
def sample_recap() -> List[Dict[str, Any]]:
    return [
        {
            "id": 401,
            "description": "COMPLAINT",
            "document_number": "1",
            "attachment_number": None,
            "date_filed": "2024-01-03",
            "absolute_url": "/docket/68571705/1/doe-v-acme-corp/",
            "filepath_local": None,
            "filepath_ia": "https://archive.org/download/gov.uscourts.mied.1/1.pdf",
            "filepath_s3": "https://s3.test/1.pdf",
        },
        {
            "id": 402,
            "description": "ORDER",
            "document_number": "2",
            "attachment_number": 1,
            "date_filed": "2024-02-10",
            "absolute_url": "",
            "filepath_local": "recap/gov.uscourts.mied.1.2.pdf",
        },
    ]
