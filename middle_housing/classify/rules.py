"""Ordered rule engine deciding whether a permit describes middle housing.

The checks run as a fixed guard sequence over normalised permit text:

1. hard exclusions (inspection-only, repairs, foundation, grading, envelope, retrofit)
2. institutional / commercial work without a residential mixed-use signal
3. demolition without anything being built afterwards
4. housing type detection: unit lot subdivision, explicit housing types,
   unit counts, second units, then new single family residences
5. explicit "middle housing" wording, conversions to residential use and the
   duplex + SFR relabel

The first exclusion that matches decides the outcome. Match reasons are audit
notes only; they never change which branch is taken.
"""

from __future__ import annotations

import re

from middle_housing.classify.normalize import normalize_text
from middle_housing.common.models import ClassifiedRecord, Excluded, Included, Verdict

ULS_TYPE = "Unit Lot Subdivision"
CLUSTER_TYPE = "Multiplex/Cluster"
SFR_TYPE = "Single Family Residence"


def _words(*terms: str) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(term) for term in terms)
    return re.compile(rf"\b(?:{alternatives})\b")


HARD_EXCLUSIONS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("STFI", _words("stfi")),
    (
        "Damage Repair",
        _words("water damage", "fire damage", "storm damage", "tree damage", "leak repair", "rot repair", "dryrot"),
    ),
    (
        "Foundation/Seismic",
        _words("foundation", "seismic", "earthquake", "pinning", "underpinning", "leveling", "shoring"),
    ),
    ("Infrastructure/Grading", _words("side sewer", "drainage", "pipe", "grade", "grading", "excavation only")),
    (
        "Envelope/Windows/Roof",
        _words("roof", "reroof", "siding", "window", "glazing", "door replacement", "egress window"),
    ),
    ("Retrofit", _words("voluntary seismic", "retrofit")),
)

INSTITUTIONAL_RE = _words(
    "school",
    "elementary",
    "hospital",
    "medical",
    "clinic",
    "lab",
    "church",
    "university",
    "uw",
    "seattle center",
    "park",
    "playground",
)
COMMERCIAL_RE = _words(
    "tenant improvement",
    "ti",
    "office",
    "retail",
    "restaurant",
    "bar",
    "store",
    "warehouse",
    "industrial",
    "telecom",
    "antenna",
    "signage",
)
MIXED_USE_RE = _words("mixed use", "multifamily", "apartment", "townhouse")

CREATION_RE = _words(
    "construct",
    "constructs",
    "construction",
    "constructing",
    "build",
    "builds",
    "building",
    "erect",
    "erection",
    "establish",
    "establishing",
    "create",
    "creates",
    "creating",
    "creation",
    "place",
    "placement",
    "install",
    "installation",
    "propose",
    "proposed",
    "new",
    "add",
    "adding",
    "develop",
    "development",
)
REMODEL_RE = _words(
    "remodel",
    "remodeling",
    "renovate",
    "renovation",
    "alter",
    "alteration",
    "alterations",
    "repair",
    "repairs",
    "replace",
    "replacement",
    "restoration",
    "interior",
    "kitchen",
    "bath",
    "bathroom",
    "deck",
    "porch",
    "addition",
    "expand",
    "expansion",
)
CONVERSION_RE = _words("convert", "conversion", "change of use")
DIRECTION_RE = _words("to", "into")
DEMOLITION_RE = _words("demolish", "demolition", "demo", "remove", "removal")
EXPLICIT_ALTERATION_RE = _words("alteration", "alterations", "remodel", "repair")
CREATES_UNIT_RE = _words("create", "establish", "new")

SUBDIVISION_RE = _words(
    "uls", "unit lot", "short plat", "lba", "lot boundary", "subdivide", "subdivision", "split lot"
)

EXPLICIT_TYPES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Townhouse", _words("townhouse", "rowhouse")),
    ("DADU", _words("dadu", "backyard cottage", "detached adu")),
    ("AADU", _words("aadu", "attached adu", "basement adu", "mother in law")),
    ("ADU", _words("adu", "accessory dwelling")),
    (
        "Multiplex/Multifamily",
        _words(
            "duplex",
            "triplex",
            "quadplex",
            "fourplex",
            "multiplex",
            "stacked flat",
            "multifamily",
            "apartment",
            "condo",
        ),
    ),
)

NUMBER_WORDS = ("one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten", "eleven", "twelve")
HOUSING_NOUNS = frozenset(
    {
        "units",
        "unit",
        "homes",
        "home",
        "houses",
        "house",
        "dwellings",
        "dwelling",
        "residences",
        "residence",
        "sfr",
        "cottages",
        "cottage",
        "structures",
    }
)
SINGLE_UNIT_NOUNS = frozenset({"cottage", "dadu", "adu"})
COUNT_FALSE_POSITIVES = ("story", "stories", "bed", "bedroom", "bath", "car", "stall", "vehicle", "van", "level", "phase")
QUANTITY_WINDOW = 15

RESIDENTIAL_CONTEXT_RE = _words("residential", "dwelling", "living", "multifamily", "single family")
ACCESSORY_CONTEXT_RE = _words("accessory", "garage", "storage")

SECOND_RE = _words("second", "2nd")
SECOND_UNIT_NOUN_RE = _words("unit", "dwelling", "residence", "home")

SINGLE_FAMILY_RE = _words("sfr", "sfh", "single family", "dwelling", "residence", "home", "house")
ACCESSORY_STRUCTURE_RE = _words("garage", "carport", "shed", "deck", "porch", "patio", "cabana", "studio")
EXPLICIT_NEW_HOUSE_RE = _words(
    "new house",
    "new home",
    "new sfr",
    "construct sfr",
    "construct house",
    "construct dwelling",
    "establish sfr",
    "build sfr",
    "erect sfr",
)

MIDDLE_HOUSING_RE = _words("middle housing")
DUPLEX_RE = _words("duplex")
SFR_RE = _words("sfr")


class _Intent:
    """Intent signals computed once over the whole normalised text."""

    __slots__ = ("creation", "remodel", "conversion", "demolition", "explicit_alteration", "creates_unit")

    def __init__(self, text: str) -> None:
        self.creation = bool(CREATION_RE.search(text))
        self.remodel = bool(REMODEL_RE.search(text))
        self.conversion = bool(CONVERSION_RE.search(text)) and bool(DIRECTION_RE.search(text))
        self.demolition = bool(DEMOLITION_RE.search(text))
        self.explicit_alteration = bool(EXPLICIT_ALTERATION_RE.search(text))
        self.creates_unit = bool(CREATES_UNIT_RE.search(text))

    @property
    def remodel_only_alteration(self) -> bool:
        return self.explicit_alteration and not self.creates_unit


def _exclusion_reason(text: str) -> str | None:
    for reason, pattern in HARD_EXCLUSIONS:
        if pattern.search(text):
            return reason
    is_institutional = bool(INSTITUTIONAL_RE.search(text))
    is_commercial = bool(COMMERCIAL_RE.search(text))
    if (is_institutional or is_commercial) and not MIXED_USE_RE.search(text):
        return "Commercial/Institutional"
    return None


def _accept_explicit_type(housing_type: str, intent: _Intent) -> str | None:
    if intent.conversion:
        return f"{housing_type} (Conversion)"
    if intent.creation:
        if not intent.explicit_alteration:
            return f"{housing_type} (New)"
        if intent.creates_unit or "ADU" in housing_type:
            return f"{housing_type} (Created via Alteration)"
        return None
    if not intent.remodel:
        return f"{housing_type} (Implied New)"
    return None


def _parse_count(token: str) -> int:
    if token.isdecimal():
        return int(token)
    if token in NUMBER_WORDS:
        return NUMBER_WORDS.index(token) + 1
    return 0


def _scan_quantities(text: str, intent: _Intent) -> tuple[str, str] | None:
    tokens = text.split(" ")
    for idx, token in enumerate(tokens):
        count = _parse_count(token)
        if count <= 0:
            continue

        window = tokens[idx + 1 : idx + 1 + QUANTITY_WINDOW]
        next_word = window[0] if window else ""
        if any(bad in next_word for bad in COUNT_FALSE_POSITIVES):
            continue

        noun = next((word for word in window if word in HOUSING_NOUNS), None)
        if noun is None:
            if intent.creation and "new" in window and count >= 2 and not intent.explicit_alteration:
                return CLUSTER_TYPE, f"Count: {count} New (Implied)"
            continue

        if noun == "structures":
            in_housing_context = bool(RESIDENTIAL_CONTEXT_RE.search(text))
            in_accessory_context = bool(ACCESSORY_CONTEXT_RE.search(" ".join(window)))
            if not in_housing_context or in_accessory_context:
                continue

        if not (intent.creation or intent.conversion):
            continue
        if intent.remodel_only_alteration:
            continue

        if count >= 2:
            return CLUSTER_TYPE, f"Count: {count} {noun}"
        if count == 1 and noun in SINGLE_UNIT_NOUNS:
            return "DADU/ADU", f"Count: 1 {noun}"
    return None


def _is_new_single_family(text: str, intent: _Intent) -> bool:
    if not SINGLE_FAMILY_RE.search(text):
        return False
    if not (intent.creation or intent.conversion):
        return False
    if ACCESSORY_STRUCTURE_RE.search(text) and not EXPLICIT_NEW_HOUSE_RE.search(text):
        return False
    if intent.remodel_only_alteration:
        return False
    return True


def classify_text(text: str) -> Verdict:
    """Classify already-normalised permit text."""
    reason = _exclusion_reason(text)
    if reason is not None:
        return Excluded(reason)

    intent = _Intent(text)
    has_subdivision = bool(SUBDIVISION_RE.search(text))

    if intent.demolition and not intent.creation and not intent.conversion and not has_subdivision:
        return Excluded("Demolition Only")

    housing_type = ""
    reasons: list[str] = []
    included = False

    if has_subdivision:
        housing_type = ULS_TYPE
        reasons.append("ULS")
        included = True

    if not housing_type:
        for candidate, pattern in EXPLICIT_TYPES:
            if pattern.search(text):
                # A rejected candidate still marks the permit as typed.
                housing_type = candidate
                accepted = _accept_explicit_type(candidate, intent)
                if accepted is not None:
                    reasons.append(accepted)
                    included = True
                break

    if not housing_type:
        quantity = _scan_quantities(text, intent)
        if quantity is not None:
            housing_type, note = quantity
            reasons.append(note)
            included = True

    if not included and SECOND_RE.search(text) and SECOND_UNIT_NOUN_RE.search(text):
        if intent.creation or intent.conversion:
            housing_type = "ADU/Duplex"
            reasons.append("Second Unit")
            included = True

    if not housing_type and _is_new_single_family(text, intent):
        housing_type = SFR_TYPE
        reasons.append("New SFR")
        included = True

    if MIDDLE_HOUSING_RE.search(text):
        housing_type = "Middle Housing"
        reasons.append("Middle Housing (Explicit)")
        included = True

    if intent.conversion and not housing_type and not included and RESIDENTIAL_CONTEXT_RE.search(text):
        housing_type = "Conversion to Residential"
        reasons.append("Conversion")
        included = True

    if included and DUPLEX_RE.search(text) and SFR_RE.search(text):
        housing_type = "Duplex + SFR"

    if not included:
        return Excluded()
    return Included(housing_type=housing_type or "Middle Housing", reasons=tuple(reasons))


def classify(description: str | None, project_name: str | None, address: str | None = None) -> Verdict:
    """Classify a permit from its description and project name.

    ``address`` is accepted so callers can pass the three permit fields together;
    it never influences the verdict.
    """
    return classify_text(normalize_text(description, project_name))


def classify_record(
    source: dict[str, str],
    description: str | None,
    project_name: str | None,
    address: str | None,
) -> ClassifiedRecord:
    cleaned_address = (address or "").strip() or None
    return ClassifiedRecord.build(source, classify(description, project_name, address), cleaned_address)
