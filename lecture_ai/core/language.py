from __future__ import annotations

import re

from lecture_ai.core.errors import ValidationError

# "en", "en-us", "zh-hant-tw", "de_DE" (underscore is folded to a dash)
_LANG_RE = re.compile(r"^[a-z]{2,3}(?:-[a-z0-9]{2,8})*$")

_INT64_MAX = 2**63 - 1

# ASCII only: str.isdigit accepts "²" and other digits int() rejects
_SUBJECT_ID_RE = re.compile(r"^-?[0-9]+$")


def normalize_language(language: str | None) -> str:
    """
    Language tags are case-insensitive (RFC 5646), so every read and write
    goes through the lowercase form: "DE-DE" -> "de-de".

    There is no default: a missing language is the caller's fault.
    """
    if language is None or not str(language).strip():
        raise ValidationError("Language code is required and cannot be empty")

    lang = str(language).strip().lower().replace("_", "-")
    if not _LANG_RE.match(lang):
        raise ValidationError(f"Invalid language code: {language!r}", language=str(language))
    return lang


def normalize_subject_id(subject_id: str | int | None) -> str:
    """
    Subject ids are 64-bit integers carried as strings end to end, so they
    never pass through a float.
    """
    if subject_id is None:
        raise ValidationError("Subject id is required")
    if isinstance(subject_id, bool):
        raise ValidationError(f"Invalid subject id: {subject_id!r}")

    s = str(subject_id).strip()
    if not _SUBJECT_ID_RE.match(s):
        raise ValidationError(f"Invalid subject id: {subject_id!r}", subject_id=s or None)

    n = int(s)
    if n < -_INT64_MAX - 1 or n > _INT64_MAX:
        raise ValidationError(f"Subject id out of 64-bit range: {s}", subject_id=s)
    return str(n)
