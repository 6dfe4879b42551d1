from __future__ import annotations
import re
from typing import Optional

PHONE_RE = re.compile(r"^\+?\d{10,15}$", re.ASCII)
EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_INT_RE = re.compile(r"^[+-]?[0-9]+$")
# BIGINT des moteurs SQL
PAGE_PARAM_MAX = 2**63 - 1

COMMENT_MAX_LENGTH = 255


def validate_phone(phone: str) -> bool:
    # fullmatch: '$' seul accepterait un '\n' final
    return PHONE_RE.fullmatch(phone) is not None


def validate_email(email: str) -> bool:
    return EMAIL_RE.fullmatch(email) is not None


def validate_comment(comment: Optional[str]) -> bool:
    return comment is None or len(comment) <= COMMENT_MAX_LENGTH


def parse_page_param(raw: Optional[str], default: int) -> int:
    """Entier >= 0, ou la valeur par défaut si le paramètre est absent/vide."""
    if raw is None or raw == "":
        return default
    if not _INT_RE.fullmatch(raw):
        raise ValueError(f"not an integer: {raw!r}")
    value = int(raw)
    if value < 0:
        raise ValueError(f"negative value: {value}")
    if value > PAGE_PARAM_MAX:
        raise ValueError(f"out of range: {value}")
    return value
