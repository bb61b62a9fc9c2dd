"""
virtual_attributes/mixin.py
---------------------------
Host side of the engine: mix into a SQLAlchemy model to give it searchable
virtual attributes.

Usage
-----
    class Person(VirtualAttributeMixin, Base):
        __tablename__ = "person"
        __virtual_attributes__ = ("fullName",)

        id = Column(Integer, primary_key=True)
        first_name = Column(String(100))
        last_name = Column(String(100))
        _fullName = Column("_fullName", String(201), index=True)

        def virtualFullName(self):
            ...

Access goes through the explicit gateway ``get``/``set``/``is_virtual``:
``person.get("fullName")`` (or its shadow alias ``"_fullName"``).
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from sqlalchemy.orm import reconstructor

from .config import VirtualAttributeConfig
from .engine import AttributeEngine
from .registry import VirtualAttributeRegistry


class VirtualAttributeMixin:
    __virtual_attributes__: Tuple[str, ...] = ()
    __virtual_config__: VirtualAttributeConfig = VirtualAttributeConfig()

    def __init_subclass__(cls, **kwargs):
        # Registry is built (and validated) before declarative maps the class,
        # so a broken declaration never produces a mapped model.
        if not cls.__dict__.get("__abstract__", False):
            cls._virtual_registry = VirtualAttributeRegistry(
                cls, cls.virtual_attribute_names(), cls.__virtual_config__
            )
        super().__init_subclass__(**kwargs)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._init_virtual_engine()

    @reconstructor
    def _init_virtual_engine(self) -> None:
        self._virtual_engine = AttributeEngine(self, type(self).virtual_registry())

    # ------------------------------------------------------------------ #
    # Class level
    # ------------------------------------------------------------------ #

    @classmethod
    def virtual_attribute_names(cls) -> Tuple[str, ...]:
        """Declared virtual attributes; override for computed declarations."""
        return tuple(cls.__virtual_attributes__)

    @classmethod
    def virtual_registry(cls) -> VirtualAttributeRegistry:
        return cls._virtual_registry

    @classmethod
    def virtual_column(cls, name: str, dialect: str = "sqlite"):
        """Query expression standing in for the virtual attribute in WHERE/ORDER BY."""
        return cls.virtual_registry().search_expression(name, dialect)

    # ------------------------------------------------------------------ #
    # Instance gateway
    # ------------------------------------------------------------------ #

    @property
    def virtual_engine(self) -> AttributeEngine:
        return self._virtual_engine

    @property
    def virtual_read_only(self) -> bool:
        return self._virtual_engine.read_only

    @virtual_read_only.setter
    def virtual_read_only(self, read_only: bool) -> None:
        self._virtual_engine.read_only = bool(read_only)

    def is_virtual(self, name: str) -> bool:
        return self.virtual_registry().resolve(name) is not None

    def get(self, name: str) -> Any:
        return self._virtual_engine.read(name)

    def set(self, name: str, value: Any) -> None:
        self._virtual_engine.write(name, value)

    def virtual_values(self) -> Dict[str, Any]:
        """Values currently held in memory, without recomputing."""
        return self._virtual_engine.values()

    def recompute_virtual_attributes(self) -> Dict[str, Any]:
        return self._virtual_engine.recompute_all()
