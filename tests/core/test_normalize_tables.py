import pytest

from einbot.core import mappings as m
from einbot.core.audit import artifact_name, audit_blob_name, crm_file_stem
from einbot.core.normalize import (
    map_category,
    normalize_business_name,
    normalize_closing_month,
    normalize_state,
    normalize_trade_name,
    normalize_trust_name,
    parse_formation_date,
    parse_member_count,
    resolve_sub_type,
    split_tax_id,
    wants_mailing_address,
)


@pytest.mark.parametrize("name,group,expected", [
    ("Acme LLC", "limited", "Acme"),
    ("Acme, LLC", "limited", "Acme"),
    ("Acme PLLC", "limited", "Acme"),
    ("Acme Holdings Inc LLC", "limited", "Acme Holdings"),
    ("Globex Corp", "corporations", "Globex Corp"),
    ("Globex LLC", "corporations", "Globex"),
    ("Mission Org", "viewadditional", "Mission Org"),
])
def test_business_name_suffixes(name, group, expected):
    assert normalize_business_name(name, group) == expected


@pytest.mark.parametrize("name", ["Acme LLC", "Acme Corp Inc", "Doe & Sons, PA", "Plain Name"])
def test_suffix_stripping_is_idempotent(name):
    once = normalize_trade_name(name, "limited")
    assert normalize_trade_name(once, "limited") == once


@pytest.mark.parametrize("group, expected", [
    ("limited", "Helping Hands"),
    ("corporations", "Helping Hands"),
    ("viewadditional", "Helping Hands LLC"),
    (None, "Helping Hands LLC"),
])
def test_trade_name_suffixes_follow_category(group, expected):
    assert normalize_trade_name("Helping Hands LLC", group) == expected


def test_trust_name_drops_long_form_endings():
    assert normalize_trust_name("Doe Family Trust L.L.C.") == "Doe Family Trust"
    assert normalize_trust_name("Doe Holdings Corporation") == "Doe Holdings"


@pytest.mark.parametrize("entity_type,category,radio", [
    ("Limited Liability Company (LLC)", m.LLC, "limited"),
    ("LLC", m.LLC, "limited"),
    ("Sole Proprietorship", m.SOLE, "sole"),
    ("S-Corporation", m.CORPORATIONS, "corporations"),
    ("LLP", m.PARTNERSHIP, "partnerships"),
    ("Non-Profit Corporation", m.VIEW_ADDITIONAL, "viewadditional"),
    ("Trusteeship", m.TRUSTS, "trusts"),
    ("Space Cooperative", "", ""),
    (None, "", ""),
])
def test_category_mapping(entity_type, category, radio):
    assert map_category(entity_type) == (category, radio)


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        m.ENTITY_CATEGORY["New Type"] = m.LLC


@pytest.mark.parametrize("entity_type,description,expected", [
    ("S-Corporation", None, ("S Corporation", "scorp")),
    ("Partnership", None, ("Partnership", "parnership")),
    ("LLC", None, ("Other", "other_option")),
    ("Non-Profit Corporation", "A 501(c)(3) shelter", ("Non-Profit/Tax-Exempt Organization", "nonprofit")),
    ("Non-Profit Corporation", "Community garden", ("Other", "other_option")),
    ("Unknown", None, ("Other", "other_option")),
])
def test_sub_type_resolution(entity_type, description, expected):
    assert resolve_sub_type(entity_type, description) == expected


def test_state_normalization():
    assert normalize_state("new york") == "NY"
    assert normalize_state(" tx ") == "TX"
    with pytest.raises(ValueError):
        normalize_state("  ")


@pytest.mark.parametrize("raw,expected", [
    ("12", "DECEMBER"), ("01", "JANUARY"), ("jan", "JANUARY"), ("March", "MARCH"), ("13", None), ("", None),
])
def test_closing_month(raw, expected):
    assert normalize_closing_month(raw) == expected


def test_formation_date_layouts():
    assert parse_formation_date("2024-03-15") == ("3", 2024)
    assert parse_formation_date("11/02/2019") == ("11", 2019)
    assert parse_formation_date("2020-07-01T00:00:00") == ("7", 2020)
    assert parse_formation_date("next spring") == (None, 0)


def test_member_count_and_tax_id():
    assert parse_member_count("3") == 3
    assert parse_member_count("2.0") == 2
    assert parse_member_count("zero") == 1
    assert parse_member_count("0") == 1
    assert split_tax_id("123-45-6789") == ("123", "45", "6789")
    assert split_tax_id("12-3456789") == ("123", "45", "6789")


def test_mailing_comparison_ignores_spacing_and_case():
    assert wants_mailing_address("100  main st", "100 Main St") is False
    assert wants_mailing_address("PO Box 1", "100 Main St") is True
    assert wants_mailing_address("", "100 Main St") is False


def test_artifact_and_audit_names():
    assert artifact_name("r1", "Acme Widgets, LLC", "ID-EINLetter") == "EntityProcess/r1/AcmeWidgetsLLC-ID-EINLetter.pdf"
    assert audit_blob_name("r1", "Acme-Widgets LLC") == "EntityProcess/r1/AcmeWidgetsLLC_data.json"
    assert audit_blob_name("r1", None) == "EntityProcess/r1/UnknownEntity_data.json"
    assert crm_file_stem("Acme Widgets LLC", "ID-EINConfirmation") == "AcmeWidgetsLLC-ID-EINConfirmation"
