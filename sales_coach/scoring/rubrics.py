"""
Methodology rubric variant table.

Each methodology is a fixed, ordered list of ComponentRules. A rule holds the
phrase cues that raise a score, penalties that lower it, requirements whose
absence becomes a missing element (with the next-call instruction coaching
should give), and an optional transcript signal (question depth, talk ratio).
The heuristic scorer and the model prompt are both built from this table.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Methodology(str, Enum):
    """Supported sales methodologies."""

    SANDLER = "sandler"
    MEDDIC = "meddic"
    CHALLENGER = "challenger"
    SPIN = "spin"
    GAP = "gap"
    GENERIC = "generic"


class Signal(str, Enum):
    """Transcript-level measurements a rule can consume."""

    QUESTION_DEPTH = "question_depth"
    TALK_RATIO = "talk_ratio"


@dataclass(frozen=True)
class Cue:
    """Phrases that, when any is present, move the score by `points`."""

    phrases: tuple[str, ...]
    points: float
    label: str


@dataclass(frozen=True)
class Requirement:
    """Evidence a component expects; absence is reported as a gap."""

    phrases: tuple[str, ...]
    missing: str
    next_call: str
    penalty: float = 0.0


@dataclass(frozen=True)
class ComponentRule:
    """Detection rules for one rubric component."""

    name: str
    key: str
    description: str = ""
    cues: tuple[Cue, ...] = ()
    penalties: tuple[Cue, ...] = ()
    requirements: tuple[Requirement, ...] = ()
    signals: tuple[Signal, ...] = ()
    is_overall: bool = False
    base: float = 5.0

    def next_call_for(self, missing: str) -> Optional[str]:
        """Instruction paired with a missing element, if the rule defines one."""
        for requirement in self.requirements:
            if requirement.missing == missing:
                return requirement.next_call
        return SIGNAL_SCRIPTS.get(missing)


@dataclass(frozen=True)
class MethodologyRubric:
    """A named methodology and its ordered components."""

    methodology: Methodology
    display_name: str
    components: tuple[ComponentRule, ...] = field(default_factory=tuple)

    @property
    def component_names(self) -> list[str]:
        """Component display names in rubric order."""
        return [c.name for c in self.components]

    def rule_for(self, name: str) -> Optional[ComponentRule]:
        """Find a component rule by display name."""
        for rule in self.components:
            if rule.name == name:
                return rule
        return None

    def order_of(self, name: str) -> int:
        """Rubric position of a component, or len(components) if unknown."""
        for index, rule in enumerate(self.components):
            if rule.name == name:
                return index
        return len(self.components)


# =============================================================================
# Shared phrase sets
# =============================================================================

AGENDA = ("agenda", "here's what i was thinking", "plan for the call", "plan for today", "for our time together")
TIME_CHECK = ("minutes", "still work for you", "how much time", "time we have")
PERMISSION_FOR_NO = (
    "okay to say no", "ok to say no", "fine to say no", "no is okay", "not a fit",
    "tell me no", "up-front contract", "upfront contract", "at the end of this call",
    "at the end of the call", "at the end of our call",
)
OUTCOMES = ("decide if it makes sense", "end of this", "both decide")

DEEPENING = ("tell me more", "help me understand", "give me an example", "what else")
DURATION = ("how long", "how often")
QUANTIFY = ("costing you", "what does that cost", "impact", "how much is this", "put a number")
PERSONAL = ("personally", "mean for you", "affecting you")
FUTURE_PAIN = ("if this continues", "what happens if", "if you don't solve", "a year from now")

BUDGET_TALK = ("budget", "invest", "set aside", "cost", "price", "pricing", "spend", "afford")
BUDGET_VALUE = ("worth to you", "what would that be worth", "roi", "return on")
BUDGET_RANGE = ("ballpark", "range", "ceiling")

DECISION_PROCESS = ("decision", "decide", "who else", "sign off", "approval", "approve")
STAKEHOLDERS = ("stakeholder", "involved", "economic buyer", "your boss", "cfo", "ceo", "committee", "budget holder")
TIMELINE = ("timeline", "deadline", "by when", "when do you need", "go live")
CRITERIA = ("criteria", "what matters most", "evaluate", "requirements")

NEXT_STEPS = ("next step", "here's what happens", "calendar", "follow up", "follow-up", "book a time")
RAPPORT = ("curious", "how did you end up", "how's your day", "how is your day", "interested in")
EMPATHY = ("that sounds frustrating", "i appreciate", "i understand", "makes sense")

# Next-call scripts
SCRIPT_AGENDA = 'Open with: "Here\'s what I was thinking for our time together..." and confirm the time.'
SCRIPT_PERMISSION = 'Say: "At the end of this call it\'s completely okay to tell me it\'s not a fit."'
SCRIPT_DEEPEN = 'After every answer ask "Tell me more about that..." at least three times before moving on.'
SCRIPT_QUANTIFY = 'Ask: "If you had to put a number on this, what is it costing you?"'
SCRIPT_BUDGET = (
    'Before presenting, ask: "What kind of investment have you set aside to solve this problem?" '
    'If they deflect: "Is this a $1,000 problem, a $10,000 problem, or somewhere in between?"'
)
SCRIPT_DECISION = 'Ask: "Walk me through how a decision like this gets made. Who else would be involved?"'
SCRIPT_NEXT_STEPS = 'Close with: "Here\'s what happens next..." and book the follow-up before hanging up.'
SCRIPT_QUESTIONS = "Plan five open questions before the call and ask at least three of them."

# Gaps found from transcript signals rather than phrases
TALK_DOMINANCE = "Rep dominated the conversation"
NO_QUESTIONS = "No discovery questions asked"
SIGNAL_SCRIPTS = {
    TALK_DOMINANCE: "Aim for 30% you, 70% them: after every statement, ask a question and let them answer.",
    NO_QUESTIONS: SCRIPT_QUESTIONS,
}


# Reusable rules
def _upfront_rule(name: str, key: str = "upfront_contract") -> ComponentRule:
    return ComponentRule(
        name=name,
        key=key,
        description="Clear expectations for the conversation, including permission to say no",
        cues=(
            Cue(AGENDA, 1, "Set an agenda"),
            Cue(TIME_CHECK, 1, "Confirmed the time available"),
            Cue(PERMISSION_FOR_NO, 3, "Gave explicit permission to say no"),
            Cue(OUTCOMES, 1, "Agreed how the call would end"),
        ),
        requirements=(
            Requirement(AGENDA, "No clear agenda set", SCRIPT_AGENDA),
            Requirement(PERMISSION_FOR_NO, 'Did not give permission for "no"', SCRIPT_PERMISSION, penalty=1),
        ),
    )


def _pain_rule(name: str, key: str = "pain") -> ComponentRule:
    return ComponentRule(
        name=name,
        key=key,
        description="Depth of problem exploration and quantification",
        cues=(
            Cue(DEEPENING, 1, "Used deepening questions"),
            Cue(DURATION, 1, "Explored duration or frequency"),
            Cue(QUANTIFY, 2, "Quantified the pain"),
            Cue(PERSONAL, 2, "Uncovered personal impact"),
            Cue(FUTURE_PAIN, 1, "Explored future consequences"),
        ),
        requirements=(
            Requirement(DEEPENING, "Surface-level questioning only", SCRIPT_DEEPEN, penalty=1),
            Requirement(QUANTIFY + ("cost", "affect"), "Pain not quantified", SCRIPT_QUANTIFY),
        ),
        signals=(Signal.QUESTION_DEPTH,),
    )


def _budget_rule(name: str, key: str = "budget") -> ComponentRule:
    return ComponentRule(
        name=name,
        key=key,
        description="Honest money conversation before presenting a solution",
        cues=(
            Cue(BUDGET_TALK, 2, "Discussed budget or investment"),
            Cue(BUDGET_VALUE, 2, "Connected investment to value"),
            Cue(BUDGET_RANGE, 1, "Explored a budget range"),
        ),
        requirements=(
            Requirement(BUDGET_TALK, "No budget or investment discussion", SCRIPT_BUDGET, penalty=2),
        ),
    )


def _decision_rule(name: str, key: str = "decision") -> ComponentRule:
    return ComponentRule(
        name=name,
        key=key,
        description="Decision maker, process, stakeholders and timeline identified",
        cues=(
            Cue(DECISION_PROCESS, 1, "Asked about the decision process"),
            Cue(STAKEHOLDERS, 2, "Identified stakeholders"),
            Cue(TIMELINE, 1, "Discussed timeline"),
            Cue(CRITERIA, 1, "Explored decision criteria"),
        ),
        requirements=(
            Requirement(DECISION_PROCESS + STAKEHOLDERS, "Did not map the decision process", SCRIPT_DECISION, penalty=1),
        ),
    )


def _next_steps_rule(name: str, key: str) -> ComponentRule:
    return ComponentRule(
        name=name,
        key=key,
        description="Clear next steps and doubts addressed",
        cues=(
            Cue(NEXT_STEPS, 2, "Set clear next steps"),
            Cue(("concern", "second thought", "anything that would stop"), 2, "Addressed potential doubts"),
        ),
        requirements=(
            Requirement(NEXT_STEPS, "No clear next steps agreed", SCRIPT_NEXT_STEPS, penalty=1),
        ),
    )


OVERALL = ComponentRule(
    name="Overall",
    key="overall",
    description="Whole-call execution including talk/listen balance",
    signals=(Signal.TALK_RATIO,),
    is_overall=True,
)


# =============================================================================
# Variant table
# =============================================================================

SANDLER = MethodologyRubric(
    methodology=Methodology.SANDLER,
    display_name="Sandler",
    components=(
        ComponentRule(
            name="Bonding & Rapport",
            key="bonding_rapport",
            description="Genuine connection and trust before business",
            cues=(
                Cue(RAPPORT, 1, "Showed genuine interest"),
                Cue(EMPATHY, 1, "Acknowledged the prospect's situation"),
            ),
            penalties=(Cue(("weather", "sports"), -1, "Relied on generic small talk"),),
            requirements=(
                Requirement(
                    RAPPORT + EMPATHY,
                    "Jumped straight to business",
                    'Before the agenda ask: "I\'m curious - how did you end up in your role?"',
                    penalty=1,
                ),
            ),
        ),
        _upfront_rule("Up-Front Contract"),
        _pain_rule("Pain"),
        _budget_rule("Budget"),
        _decision_rule("Decision"),
        ComponentRule(
            name="Fulfillment",
            key="fulfillment",
            description="Solution tied to stated pain, no feature dumping",
            cues=(
                Cue(("you mentioned", "remember when you said", "based on what you told me"), 2, "Connected to stated pain"),
                Cue(("how does that land", "what do you think", "does that make sense"), 1, "Checked for understanding"),
            ),
            penalties=(Cue(("show you everything", "all our features", "every feature"), -2, "Feature dumping detected"),),
            requirements=(
                Requirement(
                    ("you mentioned", "remember when you said", "based on what you told me"),
                    "Solution not tied to stated pain",
                    'Bridge with: "Based on what you told me about [pain], here is how we would address it."',
                ),
            ),
        ),
        _next_steps_rule("Post-Sell", "post_sell"),
        OVERALL,
    ),
)

MEDDIC = MethodologyRubric(
    methodology=Methodology.MEDDIC,
    display_name="MEDDIC",
    components=(
        ComponentRule(
            name="Metrics",
            key="metrics",
            description="Quantified business outcomes",
            cues=(
                Cue(("percent", "hours", "save", "revenue", "metric", "kpi", "roi"), 2, "Quantified outcomes"),
                Cue(QUANTIFY, 1, "Asked about impact"),
            ),
            requirements=(
                Requirement(("percent", "hours", "revenue", "metric", "kpi", "roi", "save"), "No measurable outcome agreed", SCRIPT_QUANTIFY, penalty=1),
            ),
        ),
        ComponentRule(
            name="Economic Buyer",
            key="economic_buyer",
            description="Person with budget authority identified",
            cues=(Cue(STAKEHOLDERS, 2, "Identified who controls budget"),),
            requirements=(
                Requirement(STAKEHOLDERS, "Economic buyer not identified", 'Ask: "Who owns the budget for this, and how do they usually get involved?"', penalty=1),
            ),
        ),
        ComponentRule(
            name="Decision Criteria",
            key="decision_criteria",
            cues=(Cue(CRITERIA, 2, "Explored decision criteria"),),
            requirements=(
                Requirement(CRITERIA, "Decision criteria unknown", 'Ask: "When you evaluate options, what are the three things that matter most?"', penalty=1),
            ),
        ),
        ComponentRule(
            name="Decision Process",
            key="decision",
            cues=(
                Cue(DECISION_PROCESS, 1, "Asked about the decision process"),
                Cue(TIMELINE, 2, "Discussed timeline"),
            ),
            requirements=(
                Requirement(DECISION_PROCESS, "Did not map the decision process", SCRIPT_DECISION, penalty=1),
            ),
        ),
        _pain_rule("Identify Pain"),
        ComponentRule(
            name="Champion",
            key="champion",
            description="Internal advocate who sells when the rep is not in the room",
            cues=(Cue(("champion", "internal", "advocate", "on your side", "introduce me", "help me get"), 2, "Developed an internal champion"),),
            requirements=(
                Requirement(("champion", "advocate", "introduce me", "on your side"), "No champion developed", 'Ask: "Who else on your team would benefit most if this were solved?"'),
            ),
        ),
        OVERALL,
    ),
)

CHALLENGER = MethodologyRubric(
    methodology=Methodology.CHALLENGER,
    display_name="Challenger",
    components=(
        ComponentRule(
            name="Teach",
            key="teach",
            description="Brought an insight the prospect had not considered",
            cues=(Cue(("what we're seeing", "insight", "most companies", "research shows", "did you know", "we've found"), 3, "Shared a commercial insight"),),
            requirements=(
                Requirement(("what we're seeing", "insight", "most companies", "research shows", "we've found"), "No insight taught", 'Lead with: "Here\'s what we\'re seeing with companies like yours..."', penalty=1),
            ),
        ),
        ComponentRule(
            name="Tailor",
            key="tailor",
            cues=(Cue(("your company", "your team", "your industry", "you mentioned", "for you specifically"), 2, "Tailored to the prospect"),),
            requirements=(
                Requirement(("your company", "your team", "your industry", "you mentioned"), "Message not tailored", "Reference one specific detail about their business in the first two minutes."),
            ),
        ),
        ComponentRule(
            name="Take Control",
            key="take_control",
            cues=(
                Cue(AGENDA, 1, "Set the agenda"),
                Cue(NEXT_STEPS, 2, "Drove toward next steps"),
            ),
            requirements=(Requirement(NEXT_STEPS, "No clear next steps agreed", SCRIPT_NEXT_STEPS, penalty=1),),
        ),
        ComponentRule(
            name="Constructive Tension",
            key="constructive_tension",
            cues=(Cue(("challenge", "push back", "respectfully", "cost of doing nothing") + FUTURE_PAIN, 2, "Created constructive tension"),),
            requirements=(
                Requirement(("push back", "respectfully", "cost of doing nothing") + FUTURE_PAIN, "Avoided constructive tension", 'Ask: "What happens if you leave this as it is for another six months?"'),
            ),
        ),
        OVERALL,
    ),
)

SPIN = MethodologyRubric(
    methodology=Methodology.SPIN,
    display_name="SPIN",
    components=(
        ComponentRule(
            name="Situation",
            key="situation",
            cues=(Cue(("currently", "current process", "how do you", "walk me through", "tell me about your"), 2, "Asked situation questions"),),
            requirements=(Requirement(("currently", "current process", "walk me through", "tell me about your"), "Skipped situation questions", 'Ask: "Walk me through your current process for this."'),),
            signals=(Signal.QUESTION_DEPTH,),
        ),
        ComponentRule(
            name="Problem",
            key="problem",
            cues=(Cue(("problem", "challenge", "frustrat", "difficult", "struggle", "issue"), 2, "Uncovered problems"),),
            requirements=(Requirement(("problem", "challenge", "frustrat", "difficult", "struggle", "issue"), "No problem uncovered", 'Ask: "What\'s the hardest part of that today?"', penalty=1),),
        ),
        ComponentRule(
            name="Implication",
            key="implication",
            cues=(
                Cue(FUTURE_PAIN, 2, "Explored consequences"),
                Cue(QUANTIFY, 1, "Quantified impact"),
            ),
            requirements=(Requirement(FUTURE_PAIN + QUANTIFY, "Implications not explored", 'Ask: "What happens if this problem continues for another six months?"', penalty=1),),
        ),
        ComponentRule(
            name="Need-Payoff",
            key="need_payoff",
            cues=(Cue(("how would that help", "what would it mean", "if you could", "what would be different") + BUDGET_VALUE, 2, "Built value with need-payoff questions"),),
            requirements=(Requirement(("how would that help", "what would it mean", "what would be different"), "No need-payoff questions", 'Ask: "How would solving this help you personally?"'),),
        ),
        OVERALL,
    ),
)

GAP = MethodologyRubric(
    methodology=Methodology.GAP,
    display_name="Gap Selling",
    components=(
        ComponentRule(
            name="Current State",
            key="current_state",
            cues=(Cue(("currently", "today", "right now", "current process"), 2, "Mapped the current state"),),
            requirements=(Requirement(("currently", "right now", "current process"), "Current state not mapped", 'Ask: "Walk me through what happens today, step by step."'),),
            signals=(Signal.QUESTION_DEPTH,),
        ),
        ComponentRule(
            name="Future State",
            key="future_state",
            cues=(Cue(("ideal", "future", "goal", "where do you want", "success look like"), 2, "Defined the future state"),),
            requirements=(Requirement(("ideal", "future", "goal", "success look like"), "Future state not defined", 'Ask: "If this were solved, what would success look like in six months?"', penalty=1),),
        ),
        ComponentRule(
            name="Gap Impact",
            key="gap_impact",
            cues=(Cue(QUANTIFY + ("the gap", "cost of leaving"), 2, "Quantified the gap"),),
            requirements=(Requirement(QUANTIFY + ("the gap",), "Gap impact not quantified", 'Ask: "What\'s the cost of leaving this gap open?"', penalty=1),),
        ),
        ComponentRule(
            name="Root Cause",
            key="root_cause",
            cues=(Cue(("why do you think", "root cause", "what's causing", "because"), 2, "Explored root cause"),),
            requirements=(Requirement(("why do you think", "root cause", "what's causing"), "Root cause not explored", 'Ask: "Why do you think this keeps happening?"'),),
        ),
        OVERALL,
    ),
)

GENERIC = MethodologyRubric(
    methodology=Methodology.GENERIC,
    display_name="General Sales",
    components=(
        _upfront_rule("Opening"),
        _pain_rule("Discovery"),
        _budget_rule("Budget"),
        _decision_rule("Decision"),
        _next_steps_rule("Next Steps", "next_steps"),
        OVERALL,
    ),
)

RUBRICS: dict[Methodology, MethodologyRubric] = {
    rubric.methodology: rubric for rubric in (SANDLER, MEDDIC, CHALLENGER, SPIN, GAP, GENERIC)
}


def get_rubric(methodology: Optional[str]) -> MethodologyRubric:
    """Resolve a methodology name to its rubric; unknown or empty -> generic."""
    if not methodology:
        return GENERIC
    try:
        return RUBRICS[Methodology(methodology.strip().lower())]
    except ValueError:
        return GENERIC
