"""
Rule-based methodology scorer.

One rule engine runs over the rubric variant table; methodology differences
live entirely in the rubric data. Phrase cues are matched against the whole
transcript, question depth and talk ratio against speaker-labelled turns.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from statistics import mean
from typing import Optional

from sales_coach.config import Settings
from sales_coach.models.analysis import AnalysisResult, ComponentScore
from sales_coach.scoring.base import is_empty_transcript, no_data_result
from sales_coach.scoring.rubrics import (
    DEEPENING,
    DURATION,
    FUTURE_PAIN,
    NO_QUESTIONS,
    PERSONAL,
    QUANTIFY,
    ComponentRule,
    MethodologyRubric,
    Signal,
    TALK_DOMINANCE,
)

logger = logging.getLogger(__name__)

# 30/70 to 45/55 talk/listen guidance; at or below this the rep listened well
IDEAL_TALK_RATIO = 0.43
DOMINANT_TALK_RATIO = 0.6

REP_LABELS = {"rep", "agent", "sales", "salesperson", "seller", "ae", "sdr", "me", "host"}

_SPEAKER_LINE = re.compile(r"^\s*(?:\[[^\]]*\]\s*)?([A-Za-z][\w .'-]{0,40}?)\s*:\s*(.+)$")
_QUESTION = re.compile(r"[^.?!]*\?")
_DEEPENING_STARTS = ("why", "how")


def normalize(text: str) -> str:
    """Lowercase and straighten typographic quotes."""
    return text.lower().replace("’", "'").replace("‘", "'")


@lru_cache(maxsize=1024)
def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(r"(?<!\w)" + re.escape(phrase))


def mentions(text: str, phrases: tuple[str, ...]) -> bool:
    """True if any phrase starts at a word boundary in the normalized text."""
    return any(_phrase_pattern(p).search(text) for p in phrases)


@dataclass
class Turn:
    """One line of a transcript."""

    speaker: Optional[str]
    text: str


@dataclass
class TranscriptSignals:
    """Measurements taken once per transcript and shared by all rules."""

    text: str
    turns: list[Turn] = field(default_factory=list)
    rep_speaker: Optional[str] = None
    talk_ratio: Optional[float] = None
    rep_questions: int = 0
    deepening_questions: int = 0

    def mentions(self, phrases: tuple[str, ...]) -> bool:
        return mentions(self.text, phrases)


def parse_turns(transcript: str) -> list[Turn]:
    """Split a transcript into turns, keeping speaker labels when present."""
    turns = []
    for line in transcript.splitlines():
        if not line.strip():
            continue
        match = _SPEAKER_LINE.match(line)
        if match:
            turns.append(Turn(speaker=match.group(1).strip().lower(), text=match.group(2).strip()))
        else:
            turns.append(Turn(speaker=None, text=line.strip()))
    return turns


def identify_rep(turns: list[Turn]) -> Optional[str]:
    """Pick the rep's speaker label.

    A label such as "Rep" or "Agent" wins; otherwise the first speaker is
    assumed to be the rep, since reps open the calls being coached.
    """
    speakers = []
    for turn in turns:
        if turn.speaker and turn.speaker not in speakers:
            speakers.append(turn.speaker)
    if len(speakers) < 2:
        return None
    for speaker in speakers:
        if speaker in REP_LABELS or speaker.split()[0] in REP_LABELS:
            return speaker
    return speakers[0]


def extract_signals(transcript: str) -> TranscriptSignals:
    """Compute talk ratio and question counts for a transcript."""
    turns = parse_turns(normalize(transcript))
    signals = TranscriptSignals(text=normalize(transcript), turns=turns)
    rep = identify_rep(turns)
    signals.rep_speaker = rep

    if rep is not None:
        rep_turns = [t for t in turns if t.speaker == rep]
        rep_words = sum(len(t.text.split()) for t in rep_turns)
        total_words = sum(len(t.text.split()) for t in turns if t.speaker)
        if total_words:
            signals.talk_ratio = round(rep_words / total_words, 2)
    else:
        # No usable labels: every question counts toward depth
        rep_turns = turns

    deepening_cues = DEEPENING + DURATION + QUANTIFY + PERSONAL + FUTURE_PAIN
    for turn in rep_turns:
        for question in _QUESTION.findall(turn.text):
            question = question.strip()
            signals.rep_questions += 1
            if question.startswith(_DEEPENING_STARTS) or mentions(question, deepening_cues):
                signals.deepening_questions += 1
    return signals


def _clamp(value: float) -> float:
    return max(0.0, min(10.0, round(value, 1)))


def score_rule(rule: ComponentRule, signals: TranscriptSignals) -> ComponentScore:
    """Apply one component's cues, penalties and requirements."""
    score = rule.base
    indicators: list[str] = []
    missing: list[str] = []

    for cue in rule.cues:
        if signals.mentions(cue.phrases):
            score += cue.points
            indicators.append(cue.label)
    for penalty in rule.penalties:
        if signals.mentions(penalty.phrases):
            score += penalty.points
            missing.append(penalty.label)
    for requirement in rule.requirements:
        if not signals.mentions(requirement.phrases):
            score -= requirement.penalty
            missing.append(requirement.missing)

    if Signal.QUESTION_DEPTH in rule.signals:
        if signals.rep_questions == 0:
            score -= 1
            missing.append(NO_QUESTIONS)
        elif signals.deepening_questions >= 3:
            score += 2 if signals.deepening_questions >= 6 else 1
            indicators.append(f"Asked {signals.deepening_questions} follow-up questions")

    return ComponentScore(
        name=rule.name,
        score=_clamp(score),
        indicators=indicators,
        missing_elements=missing,
    )


def score_overall(rule: ComponentRule, others: list[ComponentScore], signals: TranscriptSignals) -> ComponentScore:
    """Mean of the other components, nudged by talk/listen balance."""
    score = mean(s.score for s in others) if others else rule.base
    indicators: list[str] = []
    missing: list[str] = []

    if others:
        best = max(others, key=lambda s: s.score)
        if best.score >= 7:
            indicators.append(f"Strongest area: {best.name}")

    ratio = signals.talk_ratio
    if Signal.TALK_RATIO in rule.signals and ratio is not None:
        if ratio <= IDEAL_TALK_RATIO:
            score += 0.5
            indicators.append(f"Listened more than talked (rep spoke {ratio:.0%} of words)")
        elif ratio > DOMINANT_TALK_RATIO:
            score -= 1
            missing.append(TALK_DOMINANCE)

    return ComponentScore(
        name=rule.name,
        score=_clamp(score),
        indicators=indicators,
        missing_elements=missing,
    )


class HeuristicScorer:
    """Deterministic scorer driven by the rubric variant table."""

    def __init__(self, min_words: int = 5):
        self.min_words = min_words

    @classmethod
    def from_settings(cls, settings: Settings) -> "HeuristicScorer":
        return cls(min_words=settings.min_transcript_words)

    def score(
        self,
        transcript: str,
        summary: Optional[str],
        rubric: MethodologyRubric,
    ) -> AnalysisResult:
        """Score a transcript against a rubric.

        The prior summary is appended to the searchable text so that cues
        captured only in a recorder's summary still count.
        """
        if is_empty_transcript(transcript, self.min_words):
            logger.info(f"Transcript too short for analysis ({rubric.methodology.value}), returning no-data result")
            return no_data_result(rubric)

        signals = extract_signals(transcript)
        if summary:
            signals.text = f"{signals.text}\n{normalize(summary)}"

        others = [score_rule(rule, signals) for rule in rubric.components if not rule.is_overall]
        by_name = {s.name: s for s in others}
        scores = [
            score_overall(rule, others, signals) if rule.is_overall else by_name[rule.name]
            for rule in rubric.components
        ]

        result = AnalysisResult(
            methodology=rubric.methodology.value,
            scores=scores,
            talk_ratio=signals.talk_ratio,
        )
        logger.debug(
            f"Heuristic score {rubric.methodology.value}: overall={result.overall_score} "
            f"talk_ratio={signals.talk_ratio} questions={signals.rep_questions}"
        )
        return result
