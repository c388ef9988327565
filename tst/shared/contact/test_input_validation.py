"""Tests for input normalization and field validation."""

import pytest

from src.shared.contact.input_validation import (
    ContactFields,
    FieldValidator,
    combine_errors,
    normalize_input,
    strip_slashes,
    visible_text,
)


@pytest.fixture
def validator(settings):
    return FieldValidator(settings)


def test_normalize_trims_and_escapes_html():
    assert normalize_input("  <b>Hi</b>  ") == "&lt;b&gt;Hi&lt;/b&gt;"
    assert normalize_input('say "hello" & bye') == "say &quot;hello&quot; &amp; bye"


def test_normalize_missing_value_is_empty():
    assert normalize_input(None) == ""
    assert normalize_input("") == ""
    assert normalize_input("   ") == ""


def test_normalize_removes_transport_slashes():
    assert strip_slashes("O\\'Brien") == "O'Brien"
    assert strip_slashes("C:\\\\temp") == "C:\\temp"
    assert normalize_input("O\\'Brien") == "O&#x27;Brien"


def test_normalize_output_has_no_raw_markup_or_backslashes():
    value = normalize_input("<script>alert('x')</script> \\\\ \"q\"")
    for char in "<>\"'\\":
        assert char not in value


@pytest.mark.parametrize("raw", [
    "plain text",
    "<i>markup</i>",
    "Tom & Jerry",
    "O\\'Brien",
    "back\\\\slash",
    "already &amp; escaped",
])
def test_normalize_is_idempotent(raw):
    once = normalize_input(raw)
    assert normalize_input(once) == once


def test_visible_text_decodes_entities():
    assert visible_text(normalize_input("Tom & Jerry")) == "Tom & Jerry"


@pytest.mark.parametrize("name", ["Jo", "Jane Doe", "Luis García", "María José", "Jean-Luc", "Zoë Ångström"])
def test_valid_names(validator, name):
    assert validator.validate_name(normalize_input(name))


def test_name_with_apostrophe_is_valid_after_escaping(validator):
    assert validator.validate_name(normalize_input("O'Brien"))


@pytest.mark.parametrize("name", [
    "A", "John123", "Jane_Doe", "Jane <Doe>", "x" * 81, "",
    # Digits and numerals from other scripts are not letters
    "Jo²", "Ana ½", "Louis Ⅻ", "J٣n",
])
def test_invalid_names(validator, name):
    assert not validator.validate_name(normalize_input(name))


@pytest.mark.parametrize("email", ["a@b.com", "jane@acme.io", "maria.jose@gmail.com", "first.last+tag@studio.co.uk"])
def test_valid_emails(validator, email):
    assert validator.validate_email(normalize_input(email))


@pytest.mark.parametrize("email", [
    "invalid-email",
    "@acme.io",
    "jane@",
    "user@10minutemail.com",
    "USER@Mailinator.COM",
    "someone@example.com",
    "a" * 250 + "@acme.io",
])
def test_invalid_emails(validator, email):
    assert not validator.validate_email(normalize_input(email))


@pytest.mark.parametrize("phone", ["", "+34 600 123 456", "(555) 010-2000"])
def test_valid_phones(validator, phone):
    assert validator.validate_phone(normalize_input(phone))


@pytest.mark.parametrize("phone", ["call me", "555-CALL", "+1 555 0100 ext. 4"])
def test_invalid_phones(validator, phone):
    assert not validator.validate_phone(normalize_input(phone))


def test_subject_bounds(validator):
    assert not validator.validate_subject(normalize_input("Hi"))
    assert validator.validate_subject(normalize_input("Hey"))
    assert validator.validate_subject(normalize_input("s" * 150))
    assert not validator.validate_subject(normalize_input("s" * 151))


def test_message_length_counts_visible_characters(validator):
    # 15 typed characters, 19 once escaped
    assert validator.validate_message(normalize_input("Tom & Jerry fan"))
    assert not validator.validate_message(normalize_input("Tom & Jerry fa"))
    assert not validator.validate_message(normalize_input("m" * 1501))


def test_collect_errors_reports_every_failing_field(validator):
    fields = ContactFields.from_raw(
        name="A",
        email="invalid-email",
        phone="",
        subject="Project inquiry",
        message="short",
    )
    errors = validator.collect_errors(fields)

    assert sorted(errors) == ["email", "message", "name"]
    combined = combine_errors(errors)
    assert combined.split(", ")[0].startswith("Invalid name")
    assert "Invalid email" in combined
    assert "Invalid message" in combined


def test_collect_errors_empty_for_valid_fields(validator):
    fields = ContactFields.from_raw(
        name="Jane Doe",
        email="jane@acme.io",
        phone="+1 (555) 010-2000",
        subject="Project inquiry",
        message="I would like to discuss a new website for my bakery.",
    )
    assert validator.collect_errors(fields) == {}


def test_spam_scan_text_joins_name_subject_and_message():
    fields = ContactFields.from_raw(name="Jane", subject="Hello", message="Body text", email="jane@acme.io")
    assert fields.spam_scan_text() == "Jane Hello Body text"
