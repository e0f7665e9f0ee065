import json

from txncat.categorization.vendor import extract_vendor_id, extract_vendor_label


def test_sector_has_priority():
    payload = {"sector": "Restaurants", "maxCategoryId": 7, "merchantMetadata": {"branchCode": "X"}}
    assert extract_vendor_label(payload) == "Restaurants"


def test_max_category_id_is_stringified():
    assert extract_vendor_label({"maxCategoryId": 12}) == "12"


def test_branch_code_is_last_resort():
    assert extract_vendor_label({"merchantMetadata": {"branchCode": "supermarket"}}) == "supermarket"


def test_empty_values_are_skipped():
    payload = {"sector": "  ", "maxCategoryId": None, "merchantMetadata": {"branchCode": "fuel"}}
    assert extract_vendor_label(payload) == "fuel"


def test_json_string_payload():
    assert extract_vendor_label(json.dumps({"sector": "Travel"})) == "Travel"


def test_invalid_json_yields_none():
    assert extract_vendor_label("{not json") is None


def test_falls_back_to_raw_enrichment():
    raw = {"enrichmentData": {"sector": "Fuel"}}
    assert extract_vendor_label(None, raw) == "Fuel"


def test_own_payload_wins_over_raw():
    raw = {"enrichmentData": {"sector": "Fuel"}}
    assert extract_vendor_label({"sector": "Travel"}, raw) == "Travel"


def test_no_payload():
    assert extract_vendor_label(None) is None
    assert extract_vendor_label({}) is None
    assert extract_vendor_label({"merchantMetadata": "oops"}) is None


def test_vendor_id():
    assert extract_vendor_id({"vendorId": "isracard", "companyId": "max"}) == "isracard"
    assert extract_vendor_id({"companyId": "max"}) == "max"
    assert extract_vendor_id({}) == "unknown"
    assert extract_vendor_id(None) == "unknown"
