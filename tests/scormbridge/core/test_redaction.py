# tests/scormbridge/core/test_redaction.py
from __future__ import annotations

import pytest

from scormbridge.core.redaction import maskValue, redactText



@pytest.mark.parametrize(("text", "expected"), [
    ("Set cmi.learner_name to Rene Descartes", "Set cmi.learner_name to ***"),
    ("cmi.learner_id=rdescartes, next", "cmi.learner_id=***, next"),
    ('{"learnerName":"Rene Descartes"}', '{"learnerName":"***"}'),
    ("GET /ws?token=abc123&x=1", "GET /ws?token=***&x=1"),
    ("Set cmi.location to page-2", "Set cmi.location to page-2"),
    ("", ""),
])
def test_redactText(text: str, expected: str):
    assert redactText(text) == expected


def test_maskValue():
    assert maskValue("cmi.learner_name", "Rene") == "***"
    assert maskValue("cmi.learner_name", "") == ""
    assert maskValue("cmi.location", "page") == "page"
    assert maskValue("cmi.suspend_data", "secret", ["cmi.suspend_data"]) == "***"
