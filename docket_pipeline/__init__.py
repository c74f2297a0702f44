"""docket-pipeline: docket resolution, court authority scoring and report pipeline orchestration."""

from .authority import AuthorityScorer, build_scorer, load_authority_table, score
from .config import Settings, get_settings
from .errors import (
    ClientInputError,
    ConfigurationError,
    DocketPipelineError,
    PipelineContractError,
    UnauthenticatedError,
    UpstreamError,
)
from .pipeline import PipelineRun, ReportPipeline
from .resolver import CaseResolver, clamp_limit
from .upstream import UpstreamClient

__all__ = [
    "Settings",
    "get_settings",
    "AuthorityScorer",
    "build_scorer",
    "load_authority_table",
    "score",
    "UpstreamClient",
    "CaseResolver",
    "clamp_limit",
    "ReportPipeline",
    "PipelineRun",
    "DocketPipelineError",
    "ConfigurationError",
    "ClientInputError",
    "UnauthenticatedError",
    "UpstreamError",
    "PipelineContractError",
]
