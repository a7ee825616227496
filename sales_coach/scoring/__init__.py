"""Methodology scoring: rubric table, scorers and weak-area selection."""

from sales_coach.scoring.rubrics import (
    RUBRICS,
    ComponentRule,
    Methodology,
    MethodologyRubric,
    get_rubric,
)
from sales_coach.scoring.base import MethodologyScorer, no_data_result
from sales_coach.scoring.heuristic import HeuristicScorer
from sales_coach.scoring.model_scorer import ModelScorer, SchemaError, ScoringOk
from sales_coach.scoring.weak_areas import component_key, select_weak

__all__ = [
    "RUBRICS",
    "ComponentRule",
    "Methodology",
    "MethodologyRubric",
    "get_rubric",
    "MethodologyScorer",
    "no_data_result",
    "HeuristicScorer",
    "ModelScorer",
    "SchemaError",
    "ScoringOk",
    "component_key",
    "select_weak",
]
