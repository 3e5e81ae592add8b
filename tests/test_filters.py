"""Tests for SCIM filter parsing into the filter descriptor."""

import pytest

from scim_sql_bridge.services import parse_filter


def test_no_filter():
    get_obj = parse_filter(None, 1, 10)
    assert get_obj.operator is None
    assert get_obj.rawFilter is None
    assert (get_obj.startIndex, get_obj.count) == (1, 10)


def test_blank_filter():
    assert parse_filter("   ").rawFilter is None


@pytest.mark.parametrize(
    "raw,attribute,operator,value",
    [
        ('userName eq "jdoe"', "userName", "eq", "jdoe"),
        ("externalId EQ 'jdoe'", "externalId", "eq", "jdoe"),
        ("active eq true", "active", "eq", "true"),
        ('userName eq "a and b"', "userName", "eq", "a and b"),
        ('displayName sw "J\\"x"', "displayName", "sw", 'J"x'),
        ('members.value eq "jdoe"', "members.value", "eq", "jdoe"),
    ],
)
def test_simple_expressions(raw, attribute, operator, value):
    get_obj = parse_filter(raw)

    assert get_obj.attribute == attribute
    assert get_obj.operator == operator
    assert get_obj.value == value
    assert get_obj.rawFilter == raw


@pytest.mark.parametrize(
    "raw,attribute",
    [
        ('username eq "jdoe"', "userName"),
        ('USERNAME eq "jdoe"', "userName"),
        ('ExternalID eq "jdoe"', "externalId"),
        ('ID eq "jdoe"', "id"),
        ('Members.Value eq "jdoe"', "members.value"),
        ('DISPLAYNAME eq "Admins"', "displayName"),
        ('nickName eq "jd"', "nickName"),
    ],
)
def test_attribute_names_are_case_insensitive(raw, attribute):
    get_obj = parse_filter(raw)

    assert get_obj.attribute == attribute
    assert get_obj.value in ("jdoe", "Admins", "jd")


@pytest.mark.parametrize(
    "raw",
    [
        'userName eq "a" or userName eq "b"',
        'userName eq "a" and active eq true',
        'not (userName eq "a")',
        'emails[type eq "work"]',
        "title pr",
    ],
)
def test_complex_expressions_keep_raw_filter_only(raw):
    get_obj = parse_filter(raw)

    assert get_obj.operator is None
    assert get_obj.attribute is None
    assert get_obj.rawFilter == raw
