# tests/test_naming.py
from virtual_attributes import NameMapper


def test_compute_method_name_capitalizes_first_letter():
    mapper = NameMapper()
    assert mapper.compute_method_name("fullName") == "virtualFullName"
    assert mapper.compute_method_name("x") == "virtualX"


def test_empty_getter_prefix_keeps_name():
    assert NameMapper(getter_prefix="").compute_method_name("fullName") == "fullName"


def test_persisted_name_round_trip():
    mapper = NameMapper()
    assert mapper.to_persisted_name("ageBracket") == "_ageBracket"
    assert mapper.to_virtual_name("_ageBracket") == "ageBracket"


def test_to_virtual_name_requires_leading_prefix():
    mapper = NameMapper(attribute_prefix="vs_")
    assert mapper.to_virtual_name("vs_total") == "total"
    assert mapper.to_virtual_name("total") is None
    assert mapper.to_virtual_name("a_vs_total") is None
    assert mapper.to_virtual_name("vs_") is None
    assert mapper.to_virtual_name("") is None
