"""Permit text normalisation ahead of rule matching."""

from __future__ import annotations

import re

# Punctuation that glues words together in permit descriptions ("sfr/adu", "(2)").
_GLUE_PUNCTUATION_RE = re.compile(r"[()\-,/.;:!?\"]")
_WHITESPACE_RE = re.compile(r"\s+")

# Applied in order; "struture" must become "structure" before "structure" is pluralised.
TYPO_CORRECTIONS: tuple[tuple[str, str], ...] = (
    ("strctures", "structures"),
    ("struture", "structure"),
    ("structure", "structures"),
    ("consruct", "construct"),
    ("constuct", "construct"),
    ("cnstruct", "construct"),
    ("buid", "build"),
    ("biuld", "build"),
    ("dwellng", "dwelling"),
    ("resdence", "residence"),
    ("sfrs", "sfr"),
    ("sfhs", "sfr"),
    ("sf", "sfr"),
    ("dadus", "dadu"),
    ("aadus", "aadu"),
    ("townhome", "townhouse"),
    ("townhomes", "townhouse"),
    ("twhse", "townhouse"),
    ("duplx", "duplex"),
)

_TYPO_PATTERNS = tuple((re.compile(rf"\b{re.escape(typo)}\b"), fixed) for typo, fixed in TYPO_CORRECTIONS)


def normalize_text(description: str | None, project_name: str | None = None) -> str:
    raw = f"{description or ''} {project_name or ''}".lower()
    raw = _GLUE_PUNCTUATION_RE.sub(" ", raw)
    for pattern, fixed in _TYPO_PATTERNS:
        raw = pattern.sub(fixed, raw)
    return _WHITESPACE_RE.sub(" ", raw).strip()
