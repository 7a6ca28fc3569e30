from __future__ import annotations

import pytest

from roster_intake.config.vocabulary import Vocabulary
from roster_intake.models.config_models import ValidationPolicy
from roster_intake.models.roster_entry import RosterEntry
from roster_intake.models.row_warning import RowWarning, WarningType
from roster_intake.processing.validator import EMAIL_PATTERN, check_vocabulary, validate_entry


def _entry(**kwargs) -> RosterEntry:
    base = {"row_index": 0, "student_name": "Jane Doe", "email": "jane@example.com"}
    base.update(kwargs)
    return RosterEntry(**base)


def test_valid_entry_has_no_errors():
    assert validate_entry(_entry()) == []


@pytest.mark.parametrize("name", ["", "   ", "\t"])
def test_blank_name_is_required(name):
    errors = validate_entry(_entry(student_name=name))
    assert errors == ["Row 1: Student name is required"]


def test_empty_email_is_allowed():
    assert validate_entry(_entry(email="")) == []


@pytest.mark.parametrize("email", ["bad", "a@b", "a b@c.com", "@example.com", "jane@example"])
def test_invalid_email_format(email):
    errors = validate_entry(_entry(row_index=4, email=email))
    assert errors == ["Row 5: Invalid email format"]


@pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@sub.example.org"])
def test_email_pattern_accepts(email):
    assert EMAIL_PATTERN.match(email)


def test_both_errors_in_rule_order():
    errors = validate_entry(_entry(row_index=1, student_name="", email="nope"))
    assert errors == ["Row 2: Student name is required", "Row 2: Invalid email format"]


def test_policy_promotes_warnings_to_errors():
    entry = _entry(warnings=(
        RowWarning(0, WarningType.LENGTH_UNPARSEABLE, "Row 1: Length 'x'"),
        RowWarning(0, WarningType.STATUS_UNRECOGNIZED, "Row 1: Pass/Fail 'x'"),
    ))
    assert validate_entry(entry) == []
    strict = ValidationPolicy(flag_unparseable_length=True, flag_unrecognized_status=True)
    assert validate_entry(entry, strict) == [
        "Row 1: Invalid length value",
        "Row 1: Unrecognized pass/fail value",
    ]


def test_validate_entry_does_not_mutate():
    entry = _entry(student_name="")
    validate_entry(entry)
    assert entry.errors == ()


class TestCheckVocabulary:
    def test_known_levels_case_insensitive(self):
        entry = _entry(first_aid_level="standard first aid ", cpr_level="cpr c")
        assert check_vocabulary(entry) == []

    def test_blank_levels_are_fine(self):
        assert check_vocabulary(_entry()) == []

    def test_unknown_levels_warn(self):
        entry = _entry(row_index=2, first_aid_level="Advanced Magic", cpr_level="CPR Z")
        warnings = check_vocabulary(entry)
        assert [w.warning_type for w in warnings] == [
            WarningType.UNKNOWN_FIRST_AID_LEVEL,
            WarningType.UNKNOWN_CPR_LEVEL,
        ]
        assert warnings[0].message == "Row 3: Unknown first aid level 'Advanced Magic'"
        assert warnings[1].message == "Row 3: Unknown CPR level 'CPR Z'"

    def test_custom_vocabulary(self):
        vocab = Vocabulary(first_aid_levels=frozenset({"Level X"}), cpr_levels=frozenset({"CPR Q"}))
        entry = _entry(first_aid_level="Level X", cpr_level="CPR C")
        warnings = check_vocabulary(entry, vocab)
        assert [w.warning_type for w in warnings] == [WarningType.UNKNOWN_CPR_LEVEL]
