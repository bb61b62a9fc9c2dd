"""
virtual_attributes/registry.py
------------------------------
Per-model registration table of virtual attributes.

Built once, when the host model class is created, from the names the model
declares and the getter functions found on it. After that no name is ever
resolved by reflection again: the engine calls ``spec.compute(record)``.

Validation
----------
- every declared name has a callable getter (``virtual`` + Name)
- SHADOWED: every shadow attribute (``_`` + name) exists on the model
- PACKED: the packed cache attribute exists on the model
- names are unique and free of the packed separators
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.sql.elements import ColumnElement

from .codec import PackedCodec
from .config import CacheStrategy, VirtualAttributeConfig
from .errors import ConfigurationError, UnknownVirtualAttribute
from .naming import NameMapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VirtualAttributeSpec:
    name: str
    compute_method_name: str
    persisted_name: str
    compute: Callable[[Any], Any]


class VirtualAttributeRegistry:
    def __init__(self, model: type, names: Iterable[str], config: VirtualAttributeConfig):
        self.model = model
        self.config = config
        self.mapper = NameMapper(config.getter_prefix, config.attribute_prefix)
        self.codec = PackedCodec(config.col_separator, config.val_separator)
        self._specs: Dict[str, VirtualAttributeSpec] = {}

        for name in names:
            self._register(name)
        if self._specs and self.strategy is CacheStrategy.PACKED:
            self._require_attribute(config.packed_field, "packed cache field", next(iter(self._specs)))

        if self._specs:
            logger.debug(
                "[Registry] %s: %s (%s)", model.__name__, ", ".join(self._specs), self.strategy.value
            )

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    def _fail(self, name: str, reason: str) -> None:
        error = ConfigurationError(f'Invalid virtual attribute "{name}" on {self.model.__name__}: {reason}')
        logger.error("[Registry] %s", error)
        raise error

    def _require_attribute(self, attr: str, what: str, name: str) -> None:
        if getattr(self.model, attr, None) is None:
            self._fail(name, f'check existing of {what} "{attr}"')

    def _register(self, name: str) -> None:
        if not name or not isinstance(name, str):
            self._fail(repr(name), "name must be a non-empty string")
        if name in self._specs:
            self._fail(name, "declared twice")
        for sep in (self.config.col_separator, self.config.val_separator):
            if sep in name:
                self._fail(name, f"name contains reserved separator {sep!r}")

        getter_name = self.mapper.compute_method_name(name)
        getter = getattr(self.model, getter_name, None)
        if not callable(getter):
            self._fail(name, f'check existing of virtual getter "{getter_name}"')

        if self.strategy is CacheStrategy.SHADOWED:
            persisted = self.mapper.to_persisted_name(name)
            self._require_attribute(persisted, "db field", name)
        else:
            persisted = name

        self._specs[name] = VirtualAttributeSpec(name, getter_name, persisted, getter)

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    @property
    def strategy(self) -> CacheStrategy:
        return self.config.strategy

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._specs)

    def __bool__(self) -> bool:
        return bool(self._specs)

    def __iter__(self):
        return iter(self._specs.values())

    def has(self, name: Optional[str]) -> bool:
        return bool(name) and name in self._specs

    def spec(self, name: str) -> VirtualAttributeSpec:
        try:
            return self._specs[name]
        except KeyError:
            error = UnknownVirtualAttribute(self.model.__name__, name)
            logger.error("[Registry] %s", error)
            raise error from None

    def resolve(self, attr_name: str) -> Optional[str]:
        """Virtual name addressed by ``attr_name`` (itself or its shadow alias), else None."""
        if self.has(attr_name):
            return attr_name
        if self.strategy is CacheStrategy.SHADOWED:
            virtual = self.mapper.to_virtual_name(attr_name)
            if self.has(virtual):
                return virtual
        return None

    # ------------------------------------------------------------------ #
    # Persisted representation
    # ------------------------------------------------------------------ #

    def compute(self, record: Any, name: str) -> Any:
        return self._specs[name].compute(record)

    def persisted_keys(self) -> List[str]:
        """Model attributes that hold the search cache."""
        if self.strategy is CacheStrategy.PACKED:
            return [self.config.packed_field] if self._specs else []
        return [spec.persisted_name for spec in self._specs.values()]

    def sweep_key(self) -> Optional[str]:
        """The single attribute a cache-only save has to touch."""
        keys = self.persisted_keys()
        return keys[0] if keys else None

    def to_persisted(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Computed values -> ``{model attribute: value}`` as written to the row."""
        if not self._specs:
            return {}
        if self.strategy is CacheStrategy.PACKED:
            packed = self.codec.encode((name, values.get(name)) for name in self._specs)
            return {self.config.packed_field: packed}
        return {spec.persisted_name: values.get(spec.name) for spec in self._specs.values()}

    def persisted_snapshot(self, record: Any) -> Dict[str, Any]:
        return {key: getattr(record, key, None) for key in self.persisted_keys()}

    def search_expression(self, name: str, dialect: str) -> ColumnElement:
        """Engine-native expression for ``name``, usable in WHERE and ORDER BY."""
        spec = self.spec(name)
        if self.strategy is CacheStrategy.SHADOWED:
            return getattr(self.model, spec.persisted_name)
        column = getattr(self.model, self.config.packed_field)
        return self.codec.query_expression(column, name, dialect)

    def search_value(self, name: str, value: Any) -> Any:
        """``value`` as stored in the cache, ready to compare with ``search_expression``."""
        self.spec(name)
        if self.strategy is CacheStrategy.PACKED and value is not None:
            return self.codec.format_value(value)
        return value
