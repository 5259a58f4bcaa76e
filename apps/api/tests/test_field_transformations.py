"""Tests for the field transformation engine."""

import pytest

from flowlink.schemas.transformations import (
    RegexExtractConfig,
    UrlPathExtractConfig,
    decode_transformation_config,
)
from flowlink.services.field_transformations import (
    apply_transformation,
    get_transformation_presets,
    preview_transformation,
    resolve_transform,
)

JIRA_URL = "https://acme.atlassian.net/browse/PAL-14571"


# =============================================================================
# extract_jira_key
# =============================================================================


def test_extract_jira_key_from_browse_url():
    assert apply_transformation(JIRA_URL, "extract_jira_key", {}) == "PAL-14571"


def test_extract_jira_key_is_case_insensitive():
    assert apply_transformation("see acme.atlassian.net/browse/pal-7 now", "extract_jira_key") == "pal-7"


def test_extract_jira_key_without_match_returns_original():
    assert apply_transformation("no key here", "extract_jira_key", {}) == "no key here"


# =============================================================================
# regex_extract
# =============================================================================


def test_regex_extract_returns_group():
    config = {"pattern": r"ticket #(\d+)", "group": 1}
    assert apply_transformation("Re: Ticket #4821 update", "regex_extract", config) == "4821"


def test_regex_extract_defaults_to_group_one():
    assert apply_transformation("ORD-991", "regex_extract", {"pattern": r"ORD-(\d+)"}) == "991"


def test_regex_extract_falls_back_to_whole_match_for_missing_group():
    config = {"pattern": r"ORD-\d+", "group": 3}
    assert apply_transformation("see ORD-991", "regex_extract", config) == "ORD-991"


def test_regex_extract_falls_back_to_whole_match_for_empty_group():
    config = {"pattern": r"ORD-(\d*)x", "group": 1}
    assert apply_transformation("ORD-x", "regex_extract", config) == "ORD-x"


def test_regex_extract_no_match_returns_original():
    assert apply_transformation("nothing", "regex_extract", {"pattern": r"\d+"}) == "nothing"


def test_regex_extract_malformed_pattern_returns_original():
    assert apply_transformation("abc(", "regex_extract", {"pattern": "(unclosed"}) == "abc("


def test_regex_extract_accepts_json_string_config():
    config = '{"pattern": "id=(\\\\w+)"}'
    assert apply_transformation("id=abc", "regex_extract", config) == "abc"


# =============================================================================
# url_path_extract
# =============================================================================


def test_url_path_extract_defaults_to_last_segment():
    assert apply_transformation("https://x.io/a/b/c/", "url_path_extract", {}) == "c"


def test_url_path_extract_from_end_offset():
    config = {"pathIndex": -2, "fromEnd": True}
    assert apply_transformation("https://x.io/a/b/c", "url_path_extract", config) == "b"


def test_url_path_extract_from_start():
    config = {"pathIndex": 0, "fromEnd": False}
    assert apply_transformation("https://x.io/a/b/c", "url_path_extract", config) == "a"


def test_url_path_extract_accepts_snake_case_keys():
    config = {"path_index": 1, "from_end": False}
    assert apply_transformation("https://x.io/a/b/c", "url_path_extract", config) == "b"


def test_url_path_extract_invalid_url_returns_original():
    config = {"pathIndex": -1, "fromEnd": True}
    assert apply_transformation("not a url", "url_path_extract", config) == "not a url"


def test_url_path_extract_from_end_rejects_non_negative_index():
    url = "https://x.io/a/b/c"
    assert apply_transformation(url, "url_path_extract", {"pathIndex": 0, "fromEnd": True}) == url
    assert apply_transformation(url, "url_path_extract", {"pathIndex": 1, "fromEnd": True}) == url


def test_url_path_extract_out_of_range_returns_original():
    config = {"pathIndex": 5, "fromEnd": False}
    assert apply_transformation("https://x.io/a", "url_path_extract", config) == "https://x.io/a"


def test_url_path_extract_without_path_returns_original():
    assert apply_transformation("https://x.io/", "url_path_extract", {}) == "https://x.io/"


# =============================================================================
# substring
# =============================================================================


def test_substring_with_length():
    assert apply_transformation("ABCDEFG", "substring", {"start": 2, "length": 3}) == "CDE"


def test_substring_with_end():
    assert apply_transformation("ABCDEFG", "substring", {"start": 1, "end": 4}) == "BCD"


def test_substring_length_takes_precedence_over_end():
    config = {"start": 0, "length": 2, "end": 6}
    assert apply_transformation("ABCDEFG", "substring", config) == "AB"


def test_substring_start_only_returns_rest():
    assert apply_transformation("ABCDEFG", "substring", {"start": 4}) == "EFG"


def test_substring_clamps_out_of_range_bounds():
    assert apply_transformation("ABC", "substring", {"start": 1, "length": 50}) == "BC"
    assert apply_transformation("ABC", "substring", {"start": -5, "end": 2}) == "AB"


def test_substring_swaps_reversed_bounds():
    assert apply_transformation("ABCDEFG", "substring", {"start": 5, "end": 2}) == "CDE"


# =============================================================================
# split_extract
# =============================================================================


def test_split_extract_returns_indexed_part():
    config = {"separator": "-", "index": 1}
    assert apply_transformation("PAL-14571", "split_extract", config) == "14571"


def test_split_extract_defaults_to_first_part():
    assert apply_transformation("a|b|c", "split_extract", {"separator": "|"}) == "a"


def test_split_extract_out_of_range_returns_original():
    config = {"separator": "-", "index": 4}
    assert apply_transformation("PAL-1", "split_extract", config) == "PAL-1"


def test_split_extract_without_separator_returns_original():
    assert apply_transformation("PAL-1", "split_extract", {"index": 1}) == "PAL-1"


# =============================================================================
# Totality and passthrough
# =============================================================================


@pytest.mark.parametrize("value", ["", None, 0])
def test_falsy_values_pass_through(value):
    assert apply_transformation(value, "extract_jira_key", {}) == value


def test_missing_type_is_identity():
    assert apply_transformation("PAL-1", None, {"pattern": "x"}) == "PAL-1"


@pytest.mark.parametrize(
    "kind",
    ["extract_jira_key", "regex_extract", "url_path_extract", "substring", "split_extract"],
)
@pytest.mark.parametrize("value", [12345, 3.5, True, "weird \x00 value", "https://"])
def test_never_raises_for_scalar_inputs(kind, value):
    result = apply_transformation(value, kind, {"pattern": "[", "index": "x", "start": "y"})
    assert result == value


def test_unknown_type_returns_original():
    assert apply_transformation("abc", "reverse", {}) == "abc"


def test_malformed_json_config_returns_original():
    assert apply_transformation("abc", "regex_extract", "{not json") == "abc"


# =============================================================================
# Config decoding and resolution
# =============================================================================


def test_decode_config_kind_overrides_blob_type():
    config = decode_transformation_config("regex_extract", {"type": "substring", "pattern": "a"})
    assert isinstance(config, RegexExtractConfig)


def test_decode_config_drops_null_values_for_defaults():
    config = decode_transformation_config("url_path_extract", {"pathIndex": None})
    assert isinstance(config, UrlPathExtractConfig)
    assert config.path_index == -1
    assert config.from_end is True


def test_resolve_transform_uses_mapping_type_with_side_config():
    transform = resolve_transform("split_extract", {"separator": "/", "index": 2})
    assert transform is not None
    assert transform.apply("a/b/c") == "c"


def test_resolve_transform_falls_back_to_blob_type():
    transform = resolve_transform(None, {"type": "extract_jira_key"})
    assert transform is not None
    assert transform.apply(JIRA_URL) == "PAL-14571"


def test_resolve_transform_accepts_json_string_blob():
    transform = resolve_transform(None, '{"type": "substring", "start": 0, "length": 3}')
    assert transform is not None
    assert transform.apply("PAL-123") == "PAL"


def test_resolve_transform_none_without_kind():
    assert resolve_transform(None, {"separator": "/"}) is None
    assert resolve_transform(None, None) is None


def test_resolve_transform_undecodable_blob_is_ignored():
    assert resolve_transform(None, "{broken") is None
    assert resolve_transform("regex_extract", {"group": "not-a-number"}) is None


# =============================================================================
# Presets / preview
# =============================================================================


def test_presets_cover_every_kind():
    kinds = {preset["type"] for preset in get_transformation_presets()}
    assert kinds == {
        "extract_jira_key",
        "regex_extract",
        "url_path_extract",
        "substring",
        "split_extract",
    }


def test_preview_reports_result():
    preview = preview_transformation(JIRA_URL, "extract_jira_key", None)
    assert preview == {"success": True, "result": "PAL-14571", "original": JIRA_URL, "error": None}


def test_preview_reports_invalid_config():
    preview = preview_transformation("abc", "substring", {"start": "nope"})
    assert preview["success"] is False
    assert preview["result"] is None
    assert preview["error"]
