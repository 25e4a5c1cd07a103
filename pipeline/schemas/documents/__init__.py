"""Party document utilities: CPF/CNPJ digits, diacritics and merge keys."""

from __future__ import annotations

import re
import unicodedata

# Shorter text keys are too likely to collide on garbage values ("n/a", "s/d").
MIN_KEY_LENGTH = 5

_NON_DIGIT_RE = re.compile(r"\D+")

_DOCUMENT_TYPES: dict[int, str] = {
    11: "CPF",
    14: "CNPJ",
}


def only_digits(value: str) -> str:
    """Strip formatting characters, keep only digits."""
    return _NON_DIGIT_RE.sub("", value)


def strip_diacritics(value: str) -> str:
    """Remove combining marks: ``"Réu"`` -> ``"Reu"``."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def document_key(document: str | None) -> str | None:
    """Derive the de-duplication key for a party document.

    Args:
        document: Display form of the document (``"123.456.789-00"``,
            ``"OAB/SP 12.345"``, a free-text identifier...).

    Returns:
        The digits-only form whenever the document carries any digit.
        Without digits, the diacritic-stripped lower-case text when that is
        at least ``MIN_KEY_LENGTH`` characters long, otherwise ``None``.
    """
    if not document:
        return None

    digits = only_digits(document)
    if digits:
        return digits

    text = strip_diacritics(document).strip().lower()
    if len(text) >= MIN_KEY_LENGTH:
        return text

    return None


def document_type_for(document: str | None) -> str | None:
    """Infer ``"CPF"`` (11 digits) or ``"CNPJ"`` (14 digits) from a document.

    Returns ``None`` for anything else; callers keep whatever type the
    source declared in that case.
    """
    if not document:
        return None
    return _DOCUMENT_TYPES.get(len(only_digits(document)))
