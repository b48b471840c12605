import pytest

from middle_housing.classify.rules import classify, classify_record
from middle_housing.common.models import Excluded, Included


def test_neutral_text_is_excluded_as_other_remodel():
    verdict = classify("Install new electrical panel and lighting", "", "")
    assert isinstance(verdict, Excluded)
    assert verdict.housing_type == "Other/Remodel"
    assert verdict.is_middle_housing is False


@pytest.mark.parametrize("fields", [("", "", ""), (None, None, None), ("   ", "\t", "\n")])
def test_classify_is_total_for_empty_inputs(fields):
    verdict = classify(*fields)
    assert verdict == Excluded()
    assert verdict.housing_type == "Other/Remodel"


def test_classify_is_deterministic():
    text = "Construct new duplex and DADU per plan"
    assert classify(text, "Project", "1 Main St") == classify(text, "Project", "1 Main St")


@pytest.mark.parametrize(
    "description,reason",
    [
        ("Construct new townhouse, STFI", "STFI"),
        ("Water damage repair to new duplex", "Damage Repair"),
        ("Foundation work for new ADU", "Foundation/Seismic"),
        ("Side sewer for new townhouses", "Infrastructure/Grading"),
        ("Replace roof on duplex", "Envelope/Windows/Roof"),
        ("Retrofit triplex", "Retrofit"),
    ],
)
def test_hard_exclusions_override_inclusion_signals(description, reason):
    verdict = classify(description, "", "")
    assert verdict == Excluded(reason)


def test_commercial_work_is_excluded_without_mixed_use():
    assert classify("Tenant improvement to retail store", "", "") == Excluded("Commercial/Institutional")


def test_commercial_with_mixed_use_is_not_excluded_as_commercial():
    verdict = classify("Construct new mixed use apartment building with retail", "", "")
    assert isinstance(verdict, Included)
    assert verdict.housing_type == "Multiplex/Multifamily"


def test_demolition_only_is_excluded():
    assert classify("Demolish existing garage", "", "") == Excluded("Demolition Only")


def test_demolish_and_construct_duplex_is_included():
    verdict = classify("Demolish existing and construct new duplex", "", "")
    assert isinstance(verdict, Included)
    assert "Multiplex" in verdict.housing_type
    assert verdict.reasons == ("Multiplex/Multifamily (New)",)


def test_new_detached_adu_is_dadu():
    verdict = classify("Construct new detached ADU at rear of lot", "", "")
    assert verdict == Included("DADU", ("DADU (New)",))


def test_construction_alterations_to_single_family_residence_is_excluded():
    verdict = classify("Construction alterations to single family residence", "", "")
    assert isinstance(verdict, Excluded)
    assert verdict.housing_type == "Other/Remodel"


def test_unit_lot_subdivision_is_always_included():
    verdict = classify("Subdivide lot into 3 unit lots (ULS)", "", "")
    assert verdict == Included("Unit Lot Subdivision", ("ULS",))


def test_subdivision_survives_demolition_gate():
    verdict = classify("Demolish existing structure, short plat", "", "")
    assert verdict.housing_type == "Unit Lot Subdivision"


def test_alteration_creating_attached_adu_is_included():
    verdict = classify("Alterations to establish AADU in basement", "", "")
    assert verdict == Included("AADU", ("AADU (Created via Alteration)",))


def test_remodel_of_townhouse_is_excluded():
    assert classify("Remodel kitchen in existing townhouse", "", "") == Excluded()


def test_bare_type_mention_is_implied_new():
    verdict = classify("", "Fremont Rowhouses Phase 2 townhouse", "")
    assert verdict == Included("Townhouse", ("Townhouse (Implied New)",))


def test_conversion_to_adu_is_included():
    verdict = classify("Convert existing garage to ADU", "", "")
    assert verdict == Included("ADU", ("ADU (Conversion)",))


def test_quantity_scan_counts_units():
    verdict = classify("Construct (4) new units with surface parking", "", "")
    assert verdict == Included("Multiplex/Cluster", ("Count: 4 units",))


def test_quantity_scan_reads_spelled_numbers():
    verdict = classify("Construct three single family homes", "", "")
    assert verdict == Included("Multiplex/Cluster", ("Count: 3 homes",))


def test_quantity_scan_skips_story_counts():
    verdict = classify("Construct 3 story single family residence", "", "")
    assert verdict == Included("Single Family Residence", ("New SFR",))


def test_quantity_scan_rejects_accessory_structures():
    verdict = classify("Construct 2 accessory structures garage", "", "")
    assert isinstance(verdict, Excluded)


def test_quantity_scan_accepts_residential_structures():
    verdict = classify("Construct 2 residential structures", "", "")
    assert verdict.housing_type == "Multiplex/Cluster"


def test_quantity_scan_single_cottage():
    verdict = classify("Install 1 cottage", "", "")
    assert verdict == Included("DADU/ADU", ("Count: 1 cottage",))


def test_quantity_scan_implied_new_units():
    verdict = classify("Construct 2 new per plan", "", "")
    assert verdict == Included("Multiplex/Cluster", ("Count: 2 New (Implied)",))


def test_second_unit_heuristic():
    verdict = classify("Add second dwelling unit", "", "")
    assert verdict == Included("ADU/Duplex", ("Second Unit",))


def test_new_single_family_residence_is_included():
    verdict = classify("Construct single family residence", "", "")
    assert verdict == Included("Single Family Residence", ("New SFR",))


def test_garage_for_house_is_not_single_family():
    assert classify("Construct new garage for house", "", "") == Excluded()


def test_garage_with_explicit_new_house_is_single_family():
    verdict = classify("Construct new house with attached garage", "", "")
    assert verdict.housing_type == "Single Family Residence"


def test_explicit_middle_housing_phrase_overrides_type():
    verdict = classify("Remodel for middle housing pilot", "", "")
    assert isinstance(verdict, Included)
    assert verdict.housing_type == "Middle Housing"


def test_conversion_to_residential_fallback():
    verdict = classify("Change of use from warehouse into residential living", "", "")
    # warehouse is commercial vocabulary without mixed use
    assert verdict == Excluded("Commercial/Institutional")
    verdict = classify("Change of use to residential living quarters", "", "")
    assert verdict == Included("Conversion to Residential", ("Conversion",))


def test_duplex_plus_sfr_relabel():
    verdict = classify("Construct new duplex and new SFR", "", "")
    assert verdict.housing_type == "Duplex + SFR"
    assert verdict.is_middle_housing is True


def test_project_name_contributes_to_classification():
    verdict = classify("Construct per plans", "Ballard Townhomes", "")
    assert verdict.housing_type == "Townhouse"


def test_classify_record_keeps_source_read_only_and_trims_address():
    row = {"Description": "Construct new DADU", "Address": "  123 Main St  "}
    record = classify_record(row, row["Description"], "", row["Address"])

    assert record.address == "123 Main St"
    assert record.is_middle_housing is True
    assert record.notes == "DADU (New)"
    with pytest.raises(TypeError):
        record.source["Description"] = "changed"


def test_excluded_record_notes_carry_reason():
    row = {"Description": "Demolish existing garage"}
    record = classify_record(row, row["Description"], "", "")
    assert record.address is None
    assert record.notes == "Excluded: Demolition Only"


@pytest.mark.parametrize(
    "description",
    [
        "Renewal permit for kitchen in townhouse",
        "Update address for townhouse kitchen",
        "Reconstruction of kitchen in townhouse",
    ],
)
def test_intent_verbs_match_whole_words_only(description):
    # "new", "add" and "construction" appear only inside longer words here.
    assert classify(description, "", "") == Excluded()
