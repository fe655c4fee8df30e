"""Row predicates built from tests on individual cells.

A condition is a flat chain of cell tests joined by ``and_()`` / ``or_()``.
It is evaluated strictly left to right with short-circuiting and no operator
precedence, i.e. ``a.or_().b.and_().c`` means ``(a or b) and c``.

Each test targets the *active* column. ``and_()`` / ``or_()`` keep it,
``and_other_cell(i)`` / ``or_other_cell(i)`` move it to column ``i`` for the
rest of the chain.

Example:
    stop = where(0).is_null().or_().is_blank().or_().is_not_numeric()
    stop(row)  # -> bool
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Self, TypeVar

from xls_table_parser.document import (
    CellIndex,
    CellType,
    Row,
    SpreadsheetCell,
    lookup_cell,
    validate_cell_index,
)

CellTest = Callable[[SpreadsheetCell], bool]


class Junction(str, Enum):
    """How a test joins the result accumulated so far."""

    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class ConditionTerm:
    """One cell test in a condition chain."""

    junction: Junction | None
    cell_index: int
    test: CellTest
    label: str

    def describe(self) -> str:
        column = (
            CellIndex(self.cell_index).name
            if self.cell_index < 0
            else str(self.cell_index)
        )
        text = f"cell[{column}].{self.label}"
        return f"{self.junction.value} {text}" if self.junction else text


def evaluate_terms(terms: tuple[ConditionTerm, ...], row: Row) -> bool:
    """Left fold of the terms over one row with short-circuit semantics."""
    result = False
    for term in terms:
        if term.junction is Junction.AND and not result:
            continue
        if term.junction is Junction.OR and result:
            continue
        result = term.test(lookup_cell(row, term.cell_index))
    return result


def _has_type(cell_type: CellType) -> CellTest:
    def test(cell: SpreadsheetCell) -> bool:
        return cell.cell_type is cell_type

    return test


def _negate(test: CellTest) -> CellTest:
    def negated(cell: SpreadsheetCell) -> bool:
        return not test(cell)

    return negated


def _string_matching(match: Callable[[str], bool]) -> CellTest:
    def test(cell: SpreadsheetCell) -> bool:
        return cell.cell_type is CellType.STRING and match(cell.as_string())

    return test


_IS_NUMERIC = _has_type(CellType.NUMERIC)
_IS_STRING = _has_type(CellType.STRING)
_IS_BLANK = _has_type(CellType.BLANK)
_IS_BOOLEAN = _has_type(CellType.BOOLEAN)
_IS_FORMULA = _has_type(CellType.FORMULA)
_IS_ERROR = _has_type(CellType.ERROR)
_IS_NULL = _has_type(CellType.MISSING)


@dataclass(frozen=True)
class RowCondition:
    """A completed condition chain; call it with a row to evaluate.

    Attributes:
        terms: Tests in the order they were written.
        active_index: Column that ``and_()`` / ``or_()`` will keep testing.
    """

    terms: tuple[ConditionTerm, ...]
    active_index: int

    def __call__(self, row: Row) -> bool:
        return evaluate_terms(self.terms, row)

    def and_(self) -> CellCondition[Self]:
        """Join the next test with AND on the same column."""
        return CellCondition(self, Junction.AND, self.active_index)

    def or_(self) -> CellCondition[Self]:
        """Join the next test with OR on the same column."""
        return CellCondition(self, Junction.OR, self.active_index)

    def and_other_cell(self, cell_index: int) -> CellCondition[Self]:
        """Join with AND and test ``cell_index`` from now on."""
        return CellCondition(self, Junction.AND, validate_cell_index(cell_index))

    def or_other_cell(self, cell_index: int) -> CellCondition[Self]:
        """Join with OR and test ``cell_index`` from now on."""
        return CellCondition(self, Junction.OR, validate_cell_index(cell_index))

    def describe(self) -> str:
        return " ".join(term.describe() for term in self.terms)


LinkT = TypeVar("LinkT", bound=RowCondition)


@dataclass(frozen=True)
class CellCondition(Generic[LinkT]):
    """A chain waiting for its next cell test.

    Every test returns a new ``LinkT`` extended by one term; the link the
    chain started from is never modified.
    """

    link: LinkT
    junction: Junction | None
    cell_index: int

    def satisfies(self, test: CellTest, label: str | None = None) -> LinkT:
        """Append an arbitrary cell test.

        Args:
            test: Predicate receiving the cell (a MissingCell if absent).
            label: Name used in ``describe()``.
        """
        term = ConditionTerm(
            junction=self.junction,
            cell_index=self.cell_index,
            test=test,
            label=label or getattr(test, "__name__", "satisfies"),
        )
        return dataclasses.replace(
            self.link,
            terms=self.link.terms + (term,),
            active_index=self.cell_index,
        )

    def is_numeric(self) -> LinkT:
        return self.satisfies(_IS_NUMERIC, "is_numeric")

    def is_not_numeric(self) -> LinkT:
        return self.satisfies(_negate(_IS_NUMERIC), "is_not_numeric")

    def is_string(self) -> LinkT:
        return self.satisfies(_IS_STRING, "is_string")

    def is_not_string(self) -> LinkT:
        return self.satisfies(_negate(_IS_STRING), "is_not_string")

    def is_blank(self) -> LinkT:
        return self.satisfies(_IS_BLANK, "is_blank")

    def is_not_blank(self) -> LinkT:
        return self.satisfies(_negate(_IS_BLANK), "is_not_blank")

    def is_boolean(self) -> LinkT:
        return self.satisfies(_IS_BOOLEAN, "is_boolean")

    def is_not_boolean(self) -> LinkT:
        return self.satisfies(_negate(_IS_BOOLEAN), "is_not_boolean")

    def is_formula(self) -> LinkT:
        return self.satisfies(_IS_FORMULA, "is_formula")

    def is_not_formula(self) -> LinkT:
        return self.satisfies(_negate(_IS_FORMULA), "is_not_formula")

    def is_error(self) -> LinkT:
        return self.satisfies(_IS_ERROR, "is_error")

    def is_not_error(self) -> LinkT:
        return self.satisfies(_negate(_IS_ERROR), "is_not_error")

    def is_null(self) -> LinkT:
        """The cell is absent from its row."""
        return self.satisfies(_IS_NULL, "is_null")

    def is_not_null(self) -> LinkT:
        return self.satisfies(_negate(_IS_NULL), "is_not_null")

    def string_equals(self, other: str) -> LinkT:
        """String cell whose text equals ``other``."""
        return self.satisfies(
            _string_matching(lambda text: text == other),
            f"string_equals({other!r})",
        )

    def string_equals_ignore_case(self, other: str) -> LinkT:
        folded = other.casefold()
        return self.satisfies(
            _string_matching(lambda text: text.casefold() == folded),
            f"string_equals_ignore_case({other!r})",
        )

    def string_contains(self, other: str) -> LinkT:
        """String cell whose text contains ``other``."""
        return self.satisfies(
            _string_matching(lambda text: other in text),
            f"string_contains({other!r})",
        )

    def string_contains_ignore_case(self, other: str) -> LinkT:
        folded = other.casefold()
        return self.satisfies(
            _string_matching(lambda text: folded in text.casefold()),
            f"string_contains_ignore_case({other!r})",
        )


def where(cell_index: int) -> CellCondition[RowCondition]:
    """Start a standalone condition on ``cell_index``.

    Raises:
        InvalidCellIndexError: If the index is negative and not a sentinel.
    """
    index = validate_cell_index(cell_index)
    return CellCondition(RowCondition(terms=(), active_index=index), None, index)
