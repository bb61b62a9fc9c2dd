# database/models.py
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from virtual_attributes import CacheStrategy, VirtualAttributeConfig, VirtualAttributeMixin

# Important: must match Base from db_setup.py
from .db_setup import Base

# Age brackets are computed against a fixed year: a getter may only depend on
# the record's own attributes, never on the current date.
AGE_REFERENCE_YEAR = 2024
AGE_BRACKETS = ((18, "minor"), (65, "adult"))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    parts = [p.strip() for p in (first, last) if p and p.strip()]
    return " ".join(parts) or None


def age_bracket(birth_year: Optional[int]) -> Optional[str]:
    if birth_year is None:
        return None
    age = AGE_REFERENCE_YEAR - int(birth_year)
    if age < 0:
        return None
    for upper, label in AGE_BRACKETS:
        if age < upper:
            return label
    return "senior"


class Person(VirtualAttributeMixin, Base):
    """People with one shadow column per virtual attribute (``_fullName``, ``_ageBracket``)."""
    __tablename__ = "person"
    __virtual_attributes__ = ("fullName", "ageBracket")

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    birth_year = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    # search cache, written only by the virtual attribute engine
    _fullName = Column("_fullName", String(201), nullable=True, index=True)
    _ageBracket = Column("_ageBracket", String(20), nullable=True, index=True)

    def virtualFullName(self):
        return full_name(self.first_name, self.last_name)

    def virtualAgeBracket(self):
        return age_bracket(self.birth_year)

    def __repr__(self):
        return f"<Person(id={self.id}, first_name={self.first_name}, last_name={self.last_name})>"


class Member(VirtualAttributeMixin, Base):
    """Same attributes as Person, cached together in one packed text column."""
    __tablename__ = "member"
    __virtual_attributes__ = ("fullName", "ageBracket")
    __virtual_config__ = VirtualAttributeConfig(strategy=CacheStrategy.PACKED)

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    birth_year = Column(Integer, nullable=True)

    # ",fullName:Ann Lee,ageBracket:adult,"
    virtual_cache = Column(Text, nullable=True)

    def virtualFullName(self):
        return full_name(self.first_name, self.last_name)

    def virtualAgeBracket(self):
        return age_bracket(self.birth_year)

    def __repr__(self):
        return f"<Member(id={self.id}, first_name={self.first_name}, last_name={self.last_name})>"


# Models addressable by name from the API and the maintenance CLI
MODELS = {
    "person": Person,
    "member": Member,
}
