from __future__ import annotations

import pytest

from roster_intake.models.roster_entry import AssessmentStatus
from roster_intake.processing.status import resolve_status


@pytest.mark.parametrize(
    "value,expected",
    [
        ("PASS", AssessmentStatus.PASS),
        ("pass", AssessmentStatus.PASS),
        ("  Pass ", AssessmentStatus.PASS),
        ("FAIL", AssessmentStatus.FAIL),
        ("fail", AssessmentStatus.FAIL),
        ("\tFail\n", AssessmentStatus.FAIL),
    ],
)
def test_resolve_status_known_values(value, expected):
    assert resolve_status(value) is expected


@pytest.mark.parametrize("value", [None, "", "   ", "P", "passed", "incomplete", "N/A", 1])
def test_resolve_status_unknown_values_are_none(value):
    assert resolve_status(value) is None
