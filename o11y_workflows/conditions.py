"""
Step conditions.

The grammar is deliberately small:

    condition  := path
                | operand OP operand
    OP         := ">=" | "<=" | "!=" | "==" | ">" | "<"

The operator is the first entry of OPERATORS found anywhere in the text, and
the expression is split at its first occurrence. An operand is resolved as a
path first; if that fails it is read as a number, then as a literal string.
Ordering operators compare numerically (non-numeric operands never compare
true); equality operators compare string forms.
"""

import operator
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, Union

from o11y_workflows.definitions import JsonValue
from o11y_workflows.models import ExecutionContext
from o11y_workflows.paths import MISSING, resolve_path
from o11y_workflows.values import is_truthy, parse_number, stringify, to_number


class ComparisonOperator(str, Enum):
    """Supported comparison operators, in lookup priority order."""

    GE = ">="
    LE = "<="
    NE = "!="
    EQ = "=="
    GT = ">"
    LT = "<"

    @property
    def is_numeric(self) -> bool:
        return self not in (ComparisonOperator.EQ, ComparisonOperator.NE)


OPERATORS: tuple[ComparisonOperator, ...] = tuple(ComparisonOperator)

_COMPARE: dict[ComparisonOperator, Callable[[object, object], bool]] = {
    ComparisonOperator.GE: operator.ge,
    ComparisonOperator.LE: operator.le,
    ComparisonOperator.NE: operator.ne,
    ComparisonOperator.EQ: operator.eq,
    ComparisonOperator.GT: operator.gt,
    ComparisonOperator.LT: operator.lt,
}


@dataclass(frozen=True)
class Operand:
    """One side of a comparison, kept as written."""

    text: str

    def resolve(self, tree: dict[str, JsonValue]) -> JsonValue:
        value = resolve_path(tree, self.text)
        if value is not MISSING:
            return value
        number = parse_number(self.text)
        if number is not None:
            return number
        return self.text


@dataclass(frozen=True)
class Comparison:
    """`left OP right`."""

    left: Operand
    operator: ComparisonOperator
    right: Operand

    def evaluate(self, tree: dict[str, JsonValue]) -> bool:
        left = self.left.resolve(tree)
        right = self.right.resolve(tree)
        compare = _COMPARE[self.operator]
        if self.operator.is_numeric:
            return compare(to_number(left), to_number(right))
        return compare(stringify(left), stringify(right))


@dataclass(frozen=True)
class Truthiness:
    """Bare path; true when it resolves to a truthy value."""

    path: str

    def evaluate(self, tree: dict[str, JsonValue]) -> bool:
        return is_truthy(resolve_path(tree, self.path))


Condition = Union[Comparison, Truthiness]


@lru_cache(maxsize=256)
def parse_condition(expression: str) -> Condition:
    """Parse a condition expression."""
    for op in OPERATORS:
        index = expression.find(op.value)
        if index == -1:
            continue
        return Comparison(
            left=Operand(expression[:index].strip()),
            operator=op,
            right=Operand(expression[index + len(op.value):].strip()),
        )
    return Truthiness(expression.strip())


def evaluate_condition(expression: str, context: ExecutionContext) -> bool:
    """Evaluate `expression` against the run's variables and step outputs."""
    return parse_condition(expression).evaluate(context.as_tree())
