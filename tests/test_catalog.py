import pytest

from carddav_records.catalog import COLTYPES, FieldCatalog, UnknownFieldError


def test_multivalue_fields():
    cat = FieldCatalog()
    assert cat.is_multivalue("email")
    assert cat.is_multivalue("im")
    assert not cat.is_multivalue("name")
    assert not cat.is_multivalue("photo")


def test_unknown_field_raises():
    cat = FieldCatalog()
    with pytest.raises(UnknownFieldError):
        cat.is_multivalue("shoesize")
    with pytest.raises(KeyError):
        cat.subtypes("shoesize")


def test_custom_subtypes_follow_standard_ones():
    cat = FieldCatalog({"email": ["Private"]})
    assert cat.subtypes("email") == ["home", "work", "other", "internet", "Private"]
    assert cat.custom_subtypes("email") == ["Private"]
    assert cat.is_custom("email", "Private")
    assert not cat.is_custom("email", "home")


def test_overlay_is_per_instance():
    a = FieldCatalog()
    b = FieldCatalog()
    a.add_custom("phone", "Boat")
    assert "Boat" in a.subtypes("phone")
    assert "Boat" not in b.subtypes("phone")
    assert "Boat" not in COLTYPES["phone"].subtypes


def test_add_custom_is_idempotent():
    cat = FieldCatalog()
    cat.add_custom("phone", "Boat")
    cat.add_custom("phone", "Boat")
    assert cat.custom_subtypes("phone") == ["Boat"]


def test_add_custom_to_single_value_field_rejected():
    with pytest.raises(UnknownFieldError):
        FieldCatalog().add_custom("name", "x")


def test_canonical_subtype_aliases_and_case():
    cat = FieldCatalog()
    assert cat.canonical_subtype("im", "xmpp") == "Jabber"
    assert cat.canonical_subtype("im", "gg") == "GaduGadu"
    assert cat.canonical_subtype("im", "GOOGLE") == "GoogleTalk"
    assert cat.canonical_subtype("im", "skype") == "Skype"
    assert cat.canonical_subtype("im", "carrier-pigeon") is None


def test_coltypes_view():
    cat = FieldCatalog({"website": ["Portfolio"]})
    view = cat.coltypes()
    assert view["name"] == {}
    assert view["website"]["subtypes"][-1] == "Portfolio"
    assert view["im"]["subtypealias"]["ymsgr"] == "yahoo"
