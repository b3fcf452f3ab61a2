# scormbridge/core/redaction.py
from __future__ import annotations

import re
from collections.abc import Iterable

__all__ = ["redactText", "maskValue", "DEFAULT_SENSITIVE_IDENTIFIERS"]



DEFAULT_SENSITIVE_IDENTIFIERS: tuple[str, ...] = ("cmi.learner_id", "cmi.learner_name")

# Learner PII as it shows up in bridge log lines and JSON records
_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # "Set cmi.learner_name to Rene Descartes"
    (re.compile(r"(?iu)(cmi\.learner_(?:id|name)\s+to\s+)[^\r\n|]+"), r"\1***"),
    # "cmi.learner_id=rdescartes", "cmi.learner_id: rdescartes"
    (re.compile(r"(?iu)(cmi\.learner_(?:id|name)\s*[:=]\s*)[^\s,|\"]+"), r"\1***"),
    # JSON-ish: "learnerName":"Rene Descartes"
    (re.compile(r'(?iu)("learner(?:Id|Name|_id|_name)"\s*:\s*")[^"]+(")'), r"\1***\2"),
    # Query parameter forms like token=abcdef
    (re.compile(r"(?iu)(token=)[^&\s]+"), r"\1***"),
]



def redactText(text: str) -> str:
    """Return sanitized text with learner identifiers replaced by ***."""
    if not text:
        return text
    out = text
    for pattern, repl in _SENSITIVE_PATTERNS:
        try:
            out = pattern.sub(repl, out)
        except re.error:
            continue # Never crash logging on regex errors
    return out



def maskValue(identifier: str, value: str, sensitive: Iterable[str] = DEFAULT_SENSITIVE_IDENTIFIERS) -> str:
    """Masks `value` when `identifier` names a sensitive data model element."""
    if identifier in set(sensitive) and value:
        return "***"
    return value
