"""Configuration helpers for the placement engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def score_weight(self, name: str) -> float:
        weights = self.raw.get("weights", {})
        return float(weights.get(name, 0.0))

    def role_boost(self, role: str) -> float:
        boosts = self.raw.get("role_boosts", {})
        return float(boosts.get(role, 0.0))

    def patterns(self, key: str) -> List[str]:
        return [str(pattern).lower() for pattern in self.raw.get(key, [])]


DEFAULTS: Dict[str, Any] = {
    "content_char_limit": 15000,
    "min_paragraph_chars": 15,
    "min_list_item_chars": 5,
    "max_existing_links": 200,
    "min_link_distance": 300,
    "words_per_link": 150,
    "min_links": 2,
    "max_links": 10,
    "low_readability_threshold": 30.0,
    "low_readability_factor": 0.6,
    "score_scale": 10.0,
    "base_score": 0.5,
    "inventory_batch_size": 100,
    "max_model_workers": 4,
    "decision_stage_boost": 0.1,
    "inbound_limit": 5,
    "weights": {
        "relevance": 0.5,
        "anchor_quality": 0.3,
        "flow": 0.2,
    },
    "role_boosts": {
        "MONEY_PAGE": 0.3,
        "STRATEGIC_PILLAR": 0.2,
        "STANDARD_CONTENT": 0.0,
    },
    "high_value_patterns": ["/product/", "/service/", "/pricing/", "/demo/", "/buy/", "/order/"],
    "authority_patterns": ["/guide/", "/pillar/", "/hub/", "/resource/", "/ultimate-guide/"],
    "excluded_url_patterns": [
        "/author/",
        "/category/",
        "/tag/",
        "/search/",
        "/login",
        "mailto:",
        "tel:",
        "javascript:",
    ],
}


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from YAML, merging with defaults."""

    data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        merge_into(data, user)

    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
