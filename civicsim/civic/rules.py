"""Keyword rule tables for vote probabilities, demographics and ripple categories.

Every table is ordered data. Probability and category tables are
first-match; demographic rules are each applied independently and summed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from civicsim.models.enums import RippleCategory

# Probability bounds
SWING_FLOOR = 0.15
SWING_CEILING = 0.85
GRANT_FLOOR = 0.25
GRANT_CEILING = 0.75
DEMOGRAPHIC_CAP = 0.15

# Vote requirement
DEFAULT_REQUIRED_VOTES = 5
SUPERMAJORITY_VOTES = 6
SUPERMAJORITY_PENALTY = 0.05

# Sentiment weights
PRIMARY_SENTIMENT_WEIGHT = 0.1
LEAN_SENTIMENT_WEIGHT = 0.05
UNNAMED_SENTIMENT_WEIGHT = 0.15
GRANT_SENTIMENT_WEIGHT = 0.05

BASE_PROBABILITY = 0.5

# Lifecycle
ACTIVATION_WINDOW = 3
RECENT_WINDOW = 3
CONSEQUENCE_SENTIMENT_SHIFT = 0.05


@dataclass(frozen=True)
class KeywordRule:
    """Matches when every ``all_of`` keyword and at least one ``any_of`` keyword occur."""

    value: float
    all_of: tuple[str, ...] = ()
    any_of: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        text = text.lower()
        if not all(k in text for k in self.all_of):
            return False
        return not self.any_of or any(k in text for k in self.any_of)


def first_match(rules: tuple[KeywordRule, ...], text: str, default: float) -> float:
    for rule in rules:
        if rule.matches(text):
            return rule.value
    return default


PROJECTION_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(0.70, all_of=("likely pass",)),
    KeywordRule(0.60, all_of=("lean", "pass")),
    KeywordRule(0.30, all_of=("likely fail",)),
    KeywordRule(0.40, all_of=("lean", "fail")),
    KeywordRule(0.50, any_of=("toss-up", "uncertain")),
    KeywordRule(0.45, any_of=("needs",)),
)

# Lean labels match whole (lowercased, stripped), not as substrings
LEAN_LABELS: dict[str, float] = {
    "lean-yes": 0.65, "lean yes": 0.65, "leaning yes": 0.65,
    "likely-yes": 0.75, "likely yes": 0.75,
    "lean-no": 0.35, "lean no": 0.35, "leaning no": 0.35,
    "likely-no": 0.25, "likely no": 0.25,
    "toss-up": 0.50, "undecided": 0.50, "uncertain": 0.50,
}

GRANT_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(0.70, all_of=("likely", "approv")),
    KeywordRule(0.45, any_of=("compet",)),
    KeywordRule(0.65, any_of=("strong",)),
)

KEYWORD_FAMILIES: dict[str, tuple[str, ...]] = {
    "health": ("health", "clinic", "hospital", "medical"),
    "housing": ("housing", "stabiliz", "afford", "rent"),
    "transit": ("transit", "bart", "bus", "transportation"),
    "education": ("school", "education", "youth", "student"),
    "jobs": ("job", "employment", "business", "economic"),
    "senior": ("senior", "elder", "aging", "retire"),
    "safety": ("alternative", "response", "police", "safety"),
}


def in_family(family: str, text: str) -> bool:
    text = text.lower()
    return any(k in text for k in KEYWORD_FAMILIES[family])


@dataclass(frozen=True)
class DemographicRule:
    """Adds ``adjustment`` when the name is in ``family`` and ``metric`` exceeds ``threshold``."""

    family: str
    metric: str
    threshold: float
    adjustment: float


DEMOGRAPHIC_RULES: tuple[DemographicRule, ...] = (
    DemographicRule("health", "senior_ratio", 0.25, 0.08),
    DemographicRule("health", "sickness_rate", 0.08, 0.06),
    DemographicRule("housing", "unemployment_rate", 0.12, 0.10),
    DemographicRule("housing", "senior_ratio", 0.20, 0.05),
    DemographicRule("transit", "adult_ratio", 0.55, 0.06),
    DemographicRule("transit", "student_ratio", 0.20, 0.05),
    DemographicRule("education", "student_ratio", 0.25, 0.10),
    DemographicRule("jobs", "unemployment_rate", 0.10, 0.08),
    DemographicRule("senior", "senior_ratio", 0.20, 0.12),
    DemographicRule("safety", "student_ratio", 0.20, 0.05),
    DemographicRule("safety", "senior_ratio", 0.25, -0.03),
)


@dataclass(frozen=True)
class RippleRule:
    """Category, lifetime and (positive, negative) coefficient per scalar."""

    category: RippleCategory
    keywords: tuple[str, ...]
    duration: int
    effects: dict[str, tuple[float, float]] = field(default_factory=dict)

    def matches(self, text: str) -> bool:
        text = text.lower()
        return any(k in text for k in self.keywords)


RIPPLE_RULES: tuple[RippleRule, ...] = (
    RippleRule(RippleCategory.HEALTH, ("health", "clinic", "hospital", "medical"), 12, {
        "sickness": (-0.02, 0.01),
        "sentiment": (0.08, -0.05),
        "community": (0.05, -0.02),
    }),
    RippleRule(RippleCategory.TRANSIT, ("transit", "bart", "bus", "hub"), 10, {
        "retail": (0.08, -0.04),
        "traffic": (0.15, -0.08),
        "sentiment": (0.05, -0.03),
    }),
    RippleRule(RippleCategory.ECONOMIC, ("business", "economic", "job", "employment"), 15, {
        "unemployment": (-0.03, 0.02),
        "retail": (0.10, -0.06),
        "sentiment": (0.06, -0.04),
    }),
    RippleRule(RippleCategory.HOUSING, ("housing", "stabiliz", "afford", "rent"), 20, {
        "sentiment": (0.10, -0.08),
        "community": (0.08, -0.05),
    }),
    RippleRule(RippleCategory.SAFETY, ("safety", "police", "alternative", "response"), 8, {
        "sentiment": (0.03, -0.06),
        "community": (0.05, -0.04),
    }),
    RippleRule(RippleCategory.ENVIRONMENT, ("park", "green", "environment", "earth"), 12, {
        "sentiment": (0.08, -0.04),
        "sickness": (-0.01, 0.005),
    }),
    RippleRule(RippleCategory.SPORTS, ("stadium", "arena", "sports"), 20, {
        "retail": (0.12, -0.06),
        "traffic": (0.20, -0.10),
        "nightlife": (0.15, -0.08),
        "sentiment": (0.05, -0.08),
    }),
    RippleRule(RippleCategory.EDUCATION, ("school", "education", "youth"), 15, {
        "sentiment": (0.06, -0.05),
        "community": (0.08, -0.04),
    }),
)

GENERAL_RIPPLE = RippleRule(RippleCategory.GENERAL, (), 6, {"sentiment": (0.04, -0.03)})


def ripple_rule_for(name: str) -> RippleRule:
    for rule in RIPPLE_RULES:
        if rule.matches(name):
            return rule
    return GENERAL_RIPPLE


# Outcome text
PASSED_CONSEQUENCES = "Initiative approved. Implementation begins."
FAILED_CONSEQUENCES = "Initiative defeated. Political fallout expected."
DELAYED_CONSEQUENCES = "Insufficient council members for vote. Delayed pending appointments."
GRANT_APPROVED_CONSEQUENCES = "Federal funding secured. Project accelerates."
GRANT_DENIED_CONSEQUENCES = "Grant denied. Timeline delayed, scope reduced."
GRANT_APPROVED_NOTES = "Grant approved. Full funding confirmed."
GRANT_DENIED_NOTES = "Grant denied. Contingency planning required."
VISIONING_CONSEQUENCES = "Community input gathered. Next phase: formal proposal."
VISIONING_NOTES = "Visioning phase concluded. Input documented."
