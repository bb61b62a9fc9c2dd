"""
virtual_attributes/codec.py
---------------------------
Packed cache field codec (``CacheStrategy.PACKED``).

Format
------
    ,name1:value1,name2:value2,

Leading and trailing column separators are always present, even for a single
attribute, and ``None`` is written as an empty value. Because every entry is
wrapped by separators, the database can pull one value out with nothing more
than ``instr``/``substr``, which is what ``query_expression`` builds.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import String, case, func
from sqlalchemy.sql.elements import ColumnElement

from .errors import UnsupportedQueryEngine

# Dialect name -> SQL function returning the 1-based position of a substring
# (0 when absent).
_LOCATE_FUNCTIONS = {
    "sqlite": "instr",
    "mysql": "instr",
    "mariadb": "instr",
    "postgresql": "strpos",
}


class PackedCodec:
    def __init__(self, col_separator: str = ",", val_separator: str = ":"):
        self.col_separator = col_separator
        self.val_separator = val_separator

    # ------------------------------------------------------------------ #
    # Python side
    # ------------------------------------------------------------------ #

    def format_value(self, value: Any) -> str:
        return "" if value is None else str(value)

    def check_token(self, token: str, what: str = "value") -> str:
        for sep in (self.col_separator, self.val_separator):
            if sep in token:
                raise ValueError(f"{what} {token!r} contains reserved separator {sep!r}")
        return token

    def encode(self, pairs: Iterable[Tuple[str, Any]]) -> str:
        """Pack ``(name, value)`` pairs, keeping their order."""
        entries = []
        for name, value in pairs:
            text = self.check_token(self.format_value(value), f"value of {name!r}")
            entries.append(self.check_token(name, "name") + self.val_separator + text)
        return self.col_separator + self.col_separator.join(entries) + self.col_separator

    def decode(self, packed: Optional[str]) -> Dict[str, str]:
        if not packed:
            return {}
        result: Dict[str, str] = {}
        for entry in packed.strip(self.col_separator).split(self.col_separator):
            if not entry:
                continue
            name, _, value = entry.partition(self.val_separator)
            result[name] = value
        return result

    def extract(self, packed: Optional[str], name: str) -> Optional[str]:
        """Same semantics as the SQL expression: text after ``name:`` up to the next ``,``."""
        if not packed:
            return None
        key = self.col_separator + name + self.val_separator
        pos = packed.find(key)
        if pos < 0:
            return None
        tail = packed[pos + len(key):]
        end = tail.find(self.col_separator)
        return tail if end < 0 else tail[:end]

    # ------------------------------------------------------------------ #
    # SQL side
    # ------------------------------------------------------------------ #

    def supports(self, dialect: str) -> bool:
        return dialect in _LOCATE_FUNCTIONS

    def query_expression(self, column: Any, name: str, dialect: str) -> ColumnElement:
        """
        Expression extracting ``name``'s value from ``column``.

        Usable anywhere a column is: ``WHERE``, ``ORDER BY``, ``SELECT``.
        Evaluates to NULL when the row's cache has no entry for ``name``.
        """
        if dialect not in _LOCATE_FUNCTIONS:
            raise UnsupportedQueryEngine(dialect)
        locate = getattr(func, _LOCATE_FUNCTIONS[dialect])
        key = self.col_separator + self.check_token(name, "name") + self.val_separator

        position = locate(column, key)
        tail = func.substr(column, position + len(key), type_=String())
        value = func.substr(tail, 1, locate(tail, self.col_separator) - 1, type_=String())
        return case((position > 0, value), else_=None)
