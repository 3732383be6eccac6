"""
Learning Engine Configuration - Central Constants Registry.

All constants used by the CAT engine MUST be defined here with proper provenance.
No magic numbers allowed in algorithm implementations.

Each constant includes:
- value: The actual constant value
- source: Citation (paper, legacy implementation, heuristic, etc.)
- notes: Rationale and context
- validated: Whether the value has been validated against source
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourcedValue:
    """
    A constant value with documented provenance.

    All learning algorithm constants must use this type to enforce documentation.
    """

    value: Any
    source: str
    notes: str = ""
    validated: bool = False

    def __post_init__(self):
        if not self.source or self.source.strip() == "":
            raise ValueError(f"SourcedValue must have non-empty source. Got: {self.source}")


# =============================================================================
# 3PL Response Model Constants
# =============================================================================

# Logistic scaling constant
# The legacy doc comment describes D as "1.7 to approximate normal ogive" while the
# legacy implementation uses 1.0. Existing item calibrations were produced against 1.0.
IRT_SCALING_D = SourcedValue(
    value=1.0,
    source="Legacy implementation default: logistic metric (D=1.0) used by existing calibration data",
    notes="Do NOT switch to 1.7 without recalibrating the item bank. "
    "The legacy comment claims the normal-ogive constant; the code never used it.",
    validated=True,
)

IRT_GUESSING_MIN = SourcedValue(
    value=0.0,
    source="Standard 3PL constraint: lower asymptote cannot be negative",
    notes="c is clamped, not rejected.",
    validated=True,
)

IRT_GUESSING_MAX = SourcedValue(
    value=0.5,
    source="Legacy implementation heuristic: guessing above 0.5 treated as calibration error",
    notes="A 2-option item has a natural floor of 0.5; anything above is clamped.",
    validated=False,
)

IRT_GUESSING_DEFAULT = SourcedValue(
    value=0.25,
    source="Standard default for 4-choice MCQ (1/K with K=4)",
    notes="Used when an item carries no guessing parameter.",
    validated=True,
)

IRT_DISCRIMINATION_MIN = SourcedValue(
    value=0.1,
    source="Legacy implementation heuristic: floor on a to keep likelihood derivatives non-degenerate",
    notes="Non-positive discriminations are calibration errors; they are floored, not rejected.",
    validated=False,
)

IRT_DISCRIMINATION_DEFAULT = SourcedValue(
    value=1.0,
    source="Standard default discrimination for uncalibrated items",
    notes="Used when an item carries no discrimination parameter.",
    validated=False,
)

IRT_DIFFICULTY_DEFAULT = SourcedValue(
    value=0.0,
    source="Standard default: uncalibrated item assumed at the population mean",
    notes="Used when an item carries no difficulty parameter.",
    validated=False,
)

IRT_EXPONENT_LIMIT = SourcedValue(
    value=700.0,
    source="IEEE-754 double overflow bound: exp(709.78) is the largest finite value (standard)",
    notes="Exponents beyond +/- this limit short-circuit to c or 1.0.",
    validated=True,
)

IRT_INFORMATION_FLOOR = SourcedValue(
    value=0.0001,
    source="Legacy implementation heuristic: positive floor keeps item ranking well-defined",
    notes="Returned whenever p <= c, q <= 0 or p >= 1.",
    validated=False,
)

# =============================================================================
# Ability Scale Constants
# =============================================================================

THETA_MIN = SourcedValue(
    value=-3.0,
    source="Standard IRT reporting range: theta in [-3, 3] covers 99.7% of N(0,1)",
    notes="Invariant enforced after every computation.",
    validated=True,
)

THETA_MAX = SourcedValue(
    value=3.0,
    source="Standard IRT reporting range: theta in [-3, 3] covers 99.7% of N(0,1)",
    notes="Invariant enforced after every computation.",
    validated=True,
)

THETA_DEFAULT = SourcedValue(
    value=0.0,
    source="Standard default: new learners start at the population mean",
    notes="Also the value used by ability reset.",
    validated=True,
)

THETA_DECIMALS = SourcedValue(
    value=4,
    source="Legacy implementation default: estimates rounded to 4 decimals",
    notes="Outputs at system boundaries are further rounded to 3 decimals where the legacy API did so.",
    validated=True,
)

# =============================================================================
# Newton-Raphson MLE Constants
# =============================================================================

MLE_MAX_ITER = SourcedValue(
    value=50,
    source="Legacy implementation default for Newton-Raphson iterations",
    notes="The estimator typically converges within 10 iterations on realistic histories.",
    validated=False,
)

MLE_TOLERANCE = SourcedValue(
    value=0.001,
    source="Legacy implementation default convergence threshold on |step|",
    notes="Finer than the 3-decimal precision reported at the boundary.",
    validated=False,
)

MLE_EXTREME_START = SourcedValue(
    value=2.5,
    source="Legacy implementation heuristic: starting points beyond +/-2.5 sit where derivatives vanish",
    notes="Starting values at or beyond this magnitude are pulled in to MLE_RESTART.",
    validated=False,
)

MLE_RESTART = SourcedValue(
    value=1.5,
    source="Legacy implementation heuristic: restart magnitude for extreme initial theta",
    notes="Sign follows the initial theta.",
    validated=False,
)

MLE_DEGENERATE_OFFSET = SourcedValue(
    value=1.5,
    source="Legacy implementation heuristic: all-correct/all-incorrect estimate offset from the extreme item",
    notes="MLE diverges at 0% or 100% correct; estimate = max(b) + 1.5 or min(b) - 1.5.",
    validated=False,
)

MLE_MAX_STEP = SourcedValue(
    value=0.5,
    source="Legacy implementation heuristic: step clipping to prevent overshoot",
    notes="Also the magnitude of the gradient fallback step on a near-flat Hessian.",
    validated=False,
)

MLE_HESSIAN_EPSILON = SourcedValue(
    value=0.0001,
    source="Legacy implementation heuristic: Hessian magnitude below which Newton steps are unreliable",
    notes="Below this, fall back to a fixed gradient step.",
    validated=False,
)

MLE_PROB_EPSILON = SourcedValue(
    value=0.0001,
    source="Legacy implementation heuristic: p and q clamped to [eps, 1 - eps] in derivatives",
    notes="Prevents division blow-up in the first derivative.",
    validated=False,
)

# =============================================================================
# Precision & Classification Constants
# =============================================================================

SEM_UNDEFINED = SourcedValue(
    value=999.0,
    source="Legacy implementation sentinel: unbounded precision when no information is available",
    notes="Not a measurement. Preserved at system boundaries for compatibility.",
    validated=True,
)

ABILITY_CUT_POINTS = SourcedValue(
    value={"below_basic": -1.0, "basic": 0.5, "proficient": 1.5},
    source="Legacy implementation placement cut points (typical four-band proficiency scale)",
    notes="theta < -1.0 Below Basic; < 0.5 Basic; < 1.5 Proficient; otherwise Advanced.",
    validated=False,
)

RECOMMENDED_DIFFICULTY_HALF_WIDTH = SourcedValue(
    value=0.5,
    source="Legacy implementation heuristic: recommended item difficulty band theta +/- 0.5",
    notes="Items near theta carry the most information under the logistic model.",
    validated=False,
)

ABILITY_RESET_THRESHOLD = SourcedValue(
    value=2.5,
    source="Legacy diagnosis heuristic: stored abilities beyond +/-2.5 flagged for reset",
    notes="Matches MLE_EXTREME_START; such values were typically produced by earlier estimator bugs.",
    validated=False,
)

FEEDBACK_CHANGE_THRESHOLD = SourcedValue(
    value=0.2,
    source="Legacy implementation heuristic: theta change treated as a notable move",
    notes="Drives the wording of per-response feedback.",
    validated=False,
)

RECALCULATION_RESPONSE_LIMIT = SourcedValue(
    value=50,
    source="Legacy implementation default: ability recalculated from the 50 most recent responses",
    notes="Used when no session is given to the recalculation.",
    validated=False,
)

# =============================================================================
# Item Selection & Termination Constants
# =============================================================================

SELECTION_NEAR_TIE_RATIO = SourcedValue(
    value=0.95,
    source="Legacy implementation heuristic: items within 5% of the best information are exchangeable",
    notes="Randomizing within the near-tie set spreads item exposure.",
    validated=False,
)

CAT_MIN_ITEMS = SourcedValue(
    value=20,
    source="Legacy placement assessment default: all 20 items required",
    notes="Minimum overrides precision: a session never ends early on a low SEM.",
    validated=False,
)

CAT_MAX_ITEMS = SourcedValue(
    value=20,
    source="Legacy placement assessment default: 20 items maximum",
    notes="Maximum overrides precision.",
    validated=False,
)

CAT_TARGET_SEM = SourcedValue(
    value=0.25,
    source="Legacy placement assessment default; typical CAT precision target (reliability ~0.94)",
    notes="Session stops once SEM <= target and the minimum is reached.",
    validated=False,
)

CAT_TARGET_DISTRIBUTION = SourcedValue(
    value={"Spelling": 5, "Grammar": 5, "Pronunciation": 5, "Syntax": 5},
    source="Legacy placement assessment default content blueprint",
    notes="Counts per category for a 20-item session.",
    validated=False,
)


# =============================================================================
# Validation
# =============================================================================


def validate_all_constants() -> list[str]:
    """
    Check internal consistency of the registry.

    Returns:
        List of human readable problems (empty when consistent)
    """
    problems: list[str] = []

    if THETA_MIN.value >= THETA_MAX.value:
        problems.append("THETA_MIN must be below THETA_MAX")
    if not THETA_MIN.value <= THETA_DEFAULT.value <= THETA_MAX.value:
        problems.append("THETA_DEFAULT must lie within [THETA_MIN, THETA_MAX]")
    if not 0.0 <= IRT_GUESSING_MIN.value <= IRT_GUESSING_MAX.value < 1.0:
        problems.append("Guessing bounds must satisfy 0 <= min <= max < 1")
    if IRT_DISCRIMINATION_MIN.value <= 0:
        problems.append("IRT_DISCRIMINATION_MIN must be positive")
    if IRT_INFORMATION_FLOOR.value <= 0:
        problems.append("IRT_INFORMATION_FLOOR must be positive")
    if not 0.0 < SELECTION_NEAR_TIE_RATIO.value <= 1.0:
        problems.append("SELECTION_NEAR_TIE_RATIO must be in (0, 1]")
    if CAT_MIN_ITEMS.value > CAT_MAX_ITEMS.value:
        problems.append("CAT_MIN_ITEMS must not exceed CAT_MAX_ITEMS")
    if MLE_RESTART.value >= MLE_EXTREME_START.value:
        problems.append("MLE_RESTART must be closer to 0 than MLE_EXTREME_START")

    cuts = ABILITY_CUT_POINTS.value
    if not cuts["below_basic"] < cuts["basic"] < cuts["proficient"]:
        problems.append("ABILITY_CUT_POINTS must be strictly increasing")

    return problems


# =============================================================================
# Convenience Accessors
# =============================================================================


def get_cat_defaults() -> dict:
    """Get CAT session defaults as a dict."""
    return {
        "min_items": CAT_MIN_ITEMS.value,
        "max_items": CAT_MAX_ITEMS.value,
        "target_sem": CAT_TARGET_SEM.value,
        "target_distribution": dict(CAT_TARGET_DISTRIBUTION.value),
        "near_tie_ratio": SELECTION_NEAR_TIE_RATIO.value,
        "mle_max_iter": MLE_MAX_ITER.value,
        "mle_tol": MLE_TOLERANCE.value,
    }
