"""Name Mapper: virtual name <-> getter name <-> persisted (shadow) name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NameMapper:
    getter_prefix: str = "virtual"
    attribute_prefix: str = "_"

    def compute_method_name(self, name: str) -> str:
        """``fullName`` -> ``virtualFullName``; an empty prefix keeps the name."""
        if not self.getter_prefix:
            return name
        return self.getter_prefix + name[:1].upper() + name[1:]

    def to_persisted_name(self, name: str) -> str:
        return self.attribute_prefix + name

    def to_virtual_name(self, persisted_name: str) -> Optional[str]:
        """Strip the attribute prefix, or return None when it does not lead the name."""
        if not persisted_name or not persisted_name.startswith(self.attribute_prefix):
            return None
        return persisted_name[len(self.attribute_prefix):] or None
