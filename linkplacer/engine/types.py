"""Typed data structures used by the placement pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Rejection reasons recorded for candidates that do not make it into the
# accepted set.
UNLOCATABLE = "unlocatable"
UNVERIFIED_ANCHOR = "unverified_anchor"
ALREADY_LINKED = "already_linked"
DUPLICATE_ANCHOR = "duplicate_anchor"
DUPLICATE_TARGET = "duplicate_target"
TOO_CLOSE = "too_close"
OVER_BUDGET = "over_budget"
UNPLACEABLE = "unplaceable"

REJECTION_REASONS = (
    UNLOCATABLE,
    UNVERIFIED_ANCHOR,
    ALREADY_LINKED,
    DUPLICATE_ANCHOR,
    DUPLICATE_TARGET,
    TOO_CLOSE,
    OVER_BUDGET,
    UNPLACEABLE,
)

MONEY_PAGE = "MONEY_PAGE"
STRATEGIC_PILLAR = "STRATEGIC_PILLAR"
STANDARD_CONTENT = "STANDARD_CONTENT"

# Funnel stages reported by the content analysis.
AWARENESS = "Awareness"
CONSIDERATION = "Consideration"
DECISION = "Decision"

CONTENT_STAGES = (AWARENESS, CONSIDERATION, DECISION)


@dataclass(frozen=True)
class ExistingLink:
    """An internal link already present in the document."""

    anchor_text: str
    href: str
    normalized_path: str


@dataclass(frozen=True)
class InventoryItem:
    """A page of the site that suggestions may link to."""

    url: str
    title: str
    role: str = STANDARD_CONTENT


@dataclass(frozen=True)
class CandidateSuggestion:
    """Link placement proposed by the external model. Untrusted."""

    anchor_text: str
    target_url: str
    claimed_paragraph: str
    target_type: str = STANDARD_CONTENT
    claimed_paragraph_with_link: str = ""
    reasoning: str = ""
    strategy_tag: str = ""
    suggestion_type: str = "NEW"
    sub_scores: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class LocatedSuggestion:
    """A candidate mapped onto the narrowest document node containing its paragraph."""

    candidate: CandidateSuggestion
    node_id: int
    span: Tuple[int, int]
    score: float = 0.0
    prior: bool = False


@dataclass(frozen=True)
class AcceptedSuggestion:
    """A suggestion that was verified, deduplicated and inserted."""

    candidate: CandidateSuggestion
    node_id: int
    span: Tuple[int, int]
    score: float
    markup: str

    def as_located(self) -> LocatedSuggestion:
        return LocatedSuggestion(
            candidate=self.candidate,
            node_id=self.node_id,
            span=self.span,
            score=self.score,
            prior=True,
        )

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["span"] = list(self.span)
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "AcceptedSuggestion":
        candidate = CandidateSuggestion(**record["candidate"])
        start, end = record["span"]
        return cls(
            candidate=candidate,
            node_id=int(record["node_id"]),
            span=(int(start), int(end)),
            score=float(record["score"]),
            markup=record.get("markup", ""),
        )


@dataclass(frozen=True)
class ContentAnalysis:
    """What the document is about, as judged by the analysis model."""

    primary_topic: str
    user_intent: str = ""
    content_stage: str = ""
    key_entities: Tuple[str, ...] = ()

    @property
    def is_decision_stage(self) -> bool:
        return self.content_stage == DECISION


@dataclass(frozen=True)
class LinkAudit:
    """Quality verdict on one internal link already in the document."""

    anchor_text: str
    url: str
    score: float
    reasoning: str = ""
    recommendation: str = ""


@dataclass(frozen=True)
class InboundSuggestion:
    """An inventory page that should link to the document."""

    source_page_url: str
    source_page_title: str
    suggested_anchor_text: str
    reasoning: str = ""


@dataclass
class DocumentInsights:
    """Analysis, link audit and inbound suggestions gathered for one document."""

    analysis: Optional[ContentAnalysis] = None
    audits: List[LinkAudit] = field(default_factory=list)
    inbound: List[InboundSuggestion] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Rejection:
    """Why a single candidate was excluded. Never an error for the batch."""

    candidate: CandidateSuggestion
    reason: str
    detail: str = ""


@dataclass
class PipelineResult:
    """Outcome of one placement run over a document."""

    html: str
    accepted: List[AcceptedSuggestion] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    candidate_total: int = 0
    target_count: int = 0
    reduced_content: str = ""
    existing_links: List[ExistingLink] = field(default_factory=list)
    prior_kept: List[AcceptedSuggestion] = field(default_factory=list)
    analysis: Optional[ContentAnalysis] = None

    @property
    def summary(self) -> str:
        return f"{len(self.accepted)} of {self.candidate_total} candidates accepted"

    def rejection_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for rejection in self.rejections:
            counts[rejection.reason] = counts.get(rejection.reason, 0) + 1
        return counts
