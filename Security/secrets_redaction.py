"""
SECRETS REDACTION
=================
Utility to mask secrets in logs.
"""

# FLOW:
# - redact() masks credential and token values before logging.
# HOW:
# - Replaces sensitive query/form values with ***.

from __future__ import annotations

import re

_SECRET_PATTERNS = [
    re.compile(r"(password=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(csrf_token=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(session[a-z_]*=)([^&;\s]+)", re.IGNORECASE),
    re.compile(r"((?<![a-z_])token=)([^&\s]+)", re.IGNORECASE),
]


def redact(value: str) -> str:
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(r"\1***", value)
    return value
