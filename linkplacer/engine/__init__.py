"""Suggestion validation and placement engine."""

from .candidates import (
    gather_candidates,
    gather_insights,
    parse_analysis,
    parse_audits,
    parse_inbound,
    parse_model_response,
)
from .config import EngineConfig, load_config
from .errors import CandidateError, DocumentError, LinkPlacerError
from .index import run_pipeline
from .links import extract_existing_links, normalize_path
from .reducer import reduce_content

__all__ = [
    "CandidateError",
    "DocumentError",
    "EngineConfig",
    "LinkPlacerError",
    "extract_existing_links",
    "gather_candidates",
    "gather_insights",
    "load_config",
    "normalize_path",
    "parse_analysis",
    "parse_audits",
    "parse_inbound",
    "parse_model_response",
    "reduce_content",
    "run_pipeline",
]
