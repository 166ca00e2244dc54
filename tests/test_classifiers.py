import pytest

from mapsift.core.classifiers import (
    ADDRESS,
    CATEGORY,
    HOURS_STATUS,
    PHONE,
    classify,
    fallback_address,
    fallback_phone,
    is_address,
    is_category,
    is_hours_status,
    is_phone,
    parse_rating,
    parse_review_count,
)


@pytest.mark.parametrize("text", ["Italian restaurant", "Bicycle repair", "Coffee shop", "Plumber"])
def test_category_accepts_business_types(text):
    assert is_category(text)


@pytest.mark.parametrize(
    "text",
    ["Sponsored", "4.5", "(212)", "Open ⋅ Closes 9 PM", "$$", "Website", "212 reviews", "", None],
)
def test_category_rejects_noise(text):
    assert not is_category(text)


@pytest.mark.parametrize("text", ["123 Main Street", "Damstraat 12, Amsterdam", "12B Baker Road"])
def test_address_accepts_streets(text):
    assert is_address(text)


@pytest.mark.parametrize("text", ["Open 24 hours", "4.5(212)", "(212) 555-0100", "1234", "Sponsored"])
def test_address_rejects_non_addresses(text):
    assert not is_address(text)


@pytest.mark.parametrize("text", ["(212) 555-0100", "+31 20 123 4567", "020-555-0199"])
def test_phone_accepts_digit_dense_strings(text):
    assert is_phone(text)


@pytest.mark.parametrize("text", ["123", "Call 555-0100", "1234567890123456", "4.5(212)"])
def test_phone_rejects(text):
    assert not is_phone(text)


def test_hours_status():
    assert is_hours_status("Open ⋅ Closes 9 PM")
    assert is_hours_status("Closed ⋅ Opens 8 AM")
    assert is_hours_status("Temporarily closed")
    assert not is_hours_status("Italian restaurant")


def test_classify_follows_precedence():
    assert classify("Italian restaurant") == CATEGORY
    assert classify("123 Main Street") == ADDRESS
    assert classify("(212) 555-0100") == PHONE
    assert classify("Open ⋅ Closes 9 PM") == HOURS_STATUS
    assert classify("4.5(212)") is None


def test_classify_skips_claimed_kinds():
    assert classify("Italian restaurant", claimed=[CATEGORY]) is None


def test_classify_is_deterministic():
    samples = ["Italian restaurant", "123 Main Street", "Open 24 hours", "+1 212 555 0100", "??"]
    assert [classify(s) for s in samples] == [classify(s) for s in samples]


def test_parse_rating():
    assert parse_rating("4.5(212)") == 4.5
    assert parse_rating("4,7 stars") == 4.7
    assert parse_rating("Joe's · 4.2 (88) · $$") == 4.2
    assert parse_rating("7.5(10)") is None
    assert parse_rating("no rating here") is None


def test_parse_review_count():
    assert parse_review_count("4.5(1,234)") == 1234
    assert parse_review_count("1,234 reviews") == 1234
    assert parse_review_count("(020) 555 · 4.2(88)") == 88
    assert parse_review_count("no numbers") is None


def test_fallback_address_from_full_text():
    assert fallback_address("Joe · 123 Main Street · Open") == "123 Main Street"
    assert fallback_address("Joe · Italian restaurant") is None


def test_fallback_phone_from_full_text():
    assert fallback_phone("Call us · +1 212-555-0100 · Open") == "+1 212-555-0100"
    assert fallback_phone("4.5(212) · 123 Main Street") is None
