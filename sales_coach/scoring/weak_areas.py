"""Weak-area selection and component-name normalization."""

import re
from typing import Optional

from sales_coach.models.analysis import GOOD_THRESHOLD, ComponentScore
from sales_coach.scoring.rubrics import MethodologyRubric

# Alternate spellings seen in transcripts, corpus tags and older rubrics
SYNONYMS = {
    "pain funnel": "pain",
    "identify pain": "pain",
    "up front contract": "upfront_contract",
    "upfront contract": "upfront_contract",
    "upfront": "upfront_contract",
    "budget step": "budget",
    "budget discussion": "budget",
    "decision step": "decision",
    "decision process": "decision",
    "decision making": "decision",
    "bonding and rapport": "bonding_rapport",
    "bonding rapport": "bonding_rapport",
    "rapport": "bonding_rapport",
    "post sell": "post_sell",
    "fulfillment presentation": "fulfillment",
    "next step": "next_steps",
    "discovery": "pain",
    "opening": "upfront_contract",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def component_key(name: str) -> str:
    """Canonical key for a component name ("Up-Front Contract" -> "upfront_contract")."""
    text = name.lower().replace("&", " and ")
    text = _NON_ALNUM.sub(" ", text).strip()
    if text in SYNONYMS:
        return SYNONYMS[text]
    return text.replace(" ", "_")


def select_weak(
    scores: list[ComponentScore],
    limit: int = 3,
    rubric: Optional[MethodologyRubric] = None,
) -> list[str]:
    """
    Pick the components most worth coaching.

    Components scoring below the "good" threshold are sorted weakest first.
    Ties keep rubric order (input order without a rubric). Components that
    normalize to the same key are reported once, by their weakest instance.

    Returns:
        At most `limit` component display names; empty when nothing is weak.
    """
    if limit <= 0:
        return []

    def order(indexed: tuple[int, ComponentScore]) -> tuple[float, int]:
        index, component = indexed
        position = rubric.order_of(component.name) if rubric else index
        return (component.score, position)

    weak = [(i, s) for i, s in enumerate(scores) if s.score < GOOD_THRESHOLD]
    selected: list[str] = []
    seen: set[str] = set()
    for _, component in sorted(weak, key=order):
        key = component_key(component.name)
        if key in seen:
            continue
        seen.add(key)
        selected.append(component.name)
        if len(selected) == limit:
            break
    return selected
