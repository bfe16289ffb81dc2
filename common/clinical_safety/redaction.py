"""PHI redaction for log output.

Patient identifiers never reach log lines in clear text. Code in this package
logs ``patient_ref(patient_id)`` instead of the identifier, and
``PHIRedactionFilter`` rewrites any identifier that still slips through
(patient room names, ``patient_id=`` tokens).

The salt mixed into references is set once at startup with ``set_salt``
(from CLINICAL_LOG_SALT via the service configuration).
"""

import hashlib
import logging
import re

DEFAULT_SALT = "aegis-clinical-safety"

_salt = DEFAULT_SALT

_ROOM_PATTERN = re.compile(r"\bpatient-(?!ref:|alerts\b)([A-Za-z0-9_.:-]+)")
_FIELD_PATTERN = re.compile(
    r"\b(patient_?id|mrn)([=:]\s*)([\"']?)(?!ref:)([^\s,\"'}]+)\3", re.IGNORECASE
)


def set_salt(salt: str | None) -> None:
    global _salt
    _salt = salt or DEFAULT_SALT


def patient_ref(patient_id) -> str:
    """Stable one-way reference for a patient identifier."""
    if patient_id is None:
        return "ref:none"
    digest = hashlib.sha256(f"{_salt}:{patient_id}".encode()).hexdigest()
    return f"ref:{digest[:12]}"


def redact(text: str) -> str:
    """Replace patient identifiers in ``text`` with their references."""
    text = _ROOM_PATTERN.sub(lambda m: f"patient-{patient_ref(m.group(1))}", text)
    return _FIELD_PATTERN.sub(
        lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)}{patient_ref(m.group(4))}{m.group(3)}",
        text,
    )


class PHIRedactionFilter(logging.Filter):
    """Logging filter that redacts patient identifiers from messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True
