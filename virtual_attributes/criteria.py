"""
virtual_attributes/criteria.py
------------------------------
Query scope for filtering UIs.

A ``SearchCriteria`` accumulates conditions across calls, the way a grid
filter builds its query one column at a time. Virtual attributes are compared
exactly like persisted columns: ``compare_virtual`` swaps in the shadow column
or the packed-cache extraction expression.

    criteria = SearchCriteria(Person, dialect="sqlite")
    criteria.compare(Person.last_name, "Lee")
    criteria.compare_virtual("ageBracket", "adult")
    rows = session.scalars(criteria.statement()).all()
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.sql.elements import ColumnElement

_OPERATORS = {"AND": and_, "OR": or_}


def as_clause(criteria: Any) -> Optional[ColumnElement]:
    """Accept a ``SearchCriteria``, a SQLAlchemy clause or None."""
    if isinstance(criteria, SearchCriteria):
        return criteria.clause
    return criteria


class SearchCriteria:
    def __init__(self, model: type, dialect: str = "sqlite"):
        self.model = model
        self.dialect = dialect
        self._clause: Optional[ColumnElement] = None

    def __bool__(self) -> bool:
        return self._clause is not None

    @property
    def clause(self) -> Optional[ColumnElement]:
        return self._clause

    def add_condition(self, condition: Any, operator: str = "AND") -> "SearchCriteria":
        condition = as_clause(condition)
        if condition is None:
            return self
        try:
            combine = _OPERATORS[operator.upper()]
        except KeyError:
            raise ValueError(f"Unknown operator {operator!r}; expected AND or OR") from None
        self._clause = condition if self._clause is None else combine(self._clause, condition)
        return self

    def compare(self, column: Any, value: Any, partial: bool = False, operator: str = "AND") -> "SearchCriteria":
        """
        Add ``column = value`` (or ``LIKE %value%`` when ``partial``).

        Empty filter values (None or "") leave the scope untouched.
        """
        if value is None or value == "":
            return self
        if partial:
            condition = column.contains(str(value), autoescape=True)
        else:
            condition = column == value
        return self.add_condition(condition, operator)

    def compare_virtual(self, name: str, value: Any, partial: bool = False, operator: str = "AND") -> "SearchCriteria":
        registry = self.model.virtual_registry()
        expression = registry.search_expression(name, self.dialect)
        return self.compare(expression, registry.search_value(name, value), partial=partial, operator=operator)

    def merge_with(self, other: "SearchCriteria", operator: str = "AND") -> "SearchCriteria":
        return self.add_condition(other, operator)

    def apply(self, statement):
        return statement if self._clause is None else statement.where(self._clause)

    def statement(self):
        return self.apply(select(self.model))

    def order_by_virtual(self, statement, name: str, descending: bool = False):
        expression = self.model.virtual_registry().search_expression(name, self.dialect)
        return statement.order_by(expression.desc() if descending else expression.asc())
