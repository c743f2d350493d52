"""Restrictiveness comparison between two rules on one numeric metric."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from jobgraph.models import RuleReference, RuleSource

Comparison = Literal["rule1", "rule2", "equal", "unknown"]

MI_WINS = "Manufacturer Instructions are more restrictive and take precedence"
REGS_WIN = "{standard} is more restrictive in this case"
STRICTER_WINS = "More restrictive requirement applies"


@dataclass(slots=True)
class PrecedenceOutcome:
    winner: RuleReference
    reason: str


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RuleComparator:
    """Decides which of two requirements is stricter."""

    @staticmethod
    def compare_restrictiveness(
        rule1: RuleReference,
        rule2: RuleReference,
        metric: str,
        value1: Any,
        value2: Any,
    ) -> Comparison:
        """Compare two numeric requirements.

        Metrics naming a clearance or minimum treat the larger value as
        stricter; metrics naming a maximum or limit treat the smaller one as
        stricter. Anything else, or non-numeric values, is "unknown".
        """
        if not (_is_number(value1) and _is_number(value2)):
            return "unknown"

        metric = metric.lower()
        if "clearance" in metric or "minimum" in metric:
            if value1 > value2:
                return "rule1"
            if value2 > value1:
                return "rule2"
            return "equal"

        if "maximum" in metric or "limit" in metric:
            if value1 < value2:
                return "rule1"
            if value2 < value1:
                return "rule2"
            return "equal"

        return "unknown"

    @classmethod
    def apply_mi_precedence(
        cls,
        rule1: RuleReference,
        rule2: RuleReference,
        metric: str,
        value1: Any,
        value2: Any,
    ) -> PrecedenceOutcome:
        """Pick the governing rule; MI wins whenever it is at least as strict."""
        comparison = cls.compare_restrictiveness(rule1, rule2, metric, value1, value2)

        is_mi1 = rule1.source == RuleSource.MANUFACTURER_INSTRUCTIONS
        is_mi2 = rule2.source == RuleSource.MANUFACTURER_INSTRUCTIONS

        if is_mi1 and not is_mi2:
            if comparison in ("rule1", "equal"):
                return PrecedenceOutcome(winner=rule1, reason=MI_WINS)
            if comparison == "rule2":
                return PrecedenceOutcome(
                    winner=rule2, reason=REGS_WIN.format(standard=rule2.standard)
                )

        if is_mi2 and not is_mi1:
            if comparison in ("rule2", "equal"):
                return PrecedenceOutcome(winner=rule2, reason=MI_WINS)
            if comparison == "rule1":
                return PrecedenceOutcome(
                    winner=rule1, reason=REGS_WIN.format(standard=rule1.standard)
                )

        # Same source on both sides, or the comparison was inconclusive
        winner = rule1 if comparison == "rule1" else rule2
        return PrecedenceOutcome(winner=winner, reason=STRICTER_WINS)
