import pytest

from middle_housing.classify.normalize import normalize_text


def test_normalize_lowercases_and_strips_glue_punctuation():
    assert normalize_text("Construct (2) New Units; SFR/ADU.", "Lot-Line") == "construct 2 new units sfr adu lot line"


def test_normalize_corrects_typos_on_whole_words_only():
    assert normalize_text("Consruct new townhomes and a duplx", "") == "construct new townhouse and a duplex"
    # "sf" inside a longer word is left alone.
    assert normalize_text("sfd sf", "") == "sfd sfr"


def test_normalize_chains_structure_typos_in_order():
    assert normalize_text("new struture", "") == "new structures"


def test_normalize_handles_missing_fields():
    assert normalize_text(None, None) == ""
    assert normalize_text("", "  Project   Name ") == "project name"


@pytest.mark.parametrize(
    "description",
    [
        "Construct new DADU, per plans (STFI)",
        "Establish use as 3 Townhomes; Construct SFRs",
        "Subdivide lot into 3 unit lots (ULS)",
        "",
    ],
)
def test_normalize_is_idempotent(description):
    once = normalize_text(description, "Project")
    assert normalize_text(once, "") == once
