"""Tests for path resolution and condition matching."""

import pytest

from seeqi.rules import MISSING, TraceStep, evaluate_conditions, match_value, resolve_path


OBSERVATION = {
    "tongue": {"color": "red", "teeth_marks": False},
    "palm": {"lines": {"life": "deep", "heart": None}},
    "dream": {"keywords": ["坠落", "考试"], "emotion": "anxious"},
    "solar": {"name": "夏至"},
    "score": 1,
}


class TestResolvePath:
    """Test explicit nested path lookup."""

    def test_nested_lookup(self):
        assert resolve_path(OBSERVATION, "palm.lines.life") == "deep"

    def test_top_level_lookup(self):
        assert resolve_path(OBSERVATION, "score") == 1

    def test_sequence_index(self):
        assert resolve_path(OBSERVATION, "dream.keywords.1") == "考试"
        assert resolve_path(OBSERVATION, "dream.keywords[0]") == "坠落"

    def test_literal_dotted_key_wins(self):
        data = {"solar.name": "夏至", "solar": {"name": "冬至"}}
        assert resolve_path(data, "solar.name") == "夏至"
        assert resolve_path(data, ["solar", "name"]) == "冬至"

    def test_literal_dotted_key_only(self):
        assert resolve_path({"solar.name": "夏至"}, "solar.name") == "夏至"

    def test_present_none_is_not_missing(self):
        assert resolve_path(OBSERVATION, "palm.lines.heart") is None

    @pytest.mark.parametrize(
        "path",
        [
            "palm.lines.fate",
            "pulse.rate",
            "tongue.color.shade",
            "dream.keywords.5",
            "dream.keywords.first",
            "",
            "...",
        ],
    )
    def test_miss_returns_sentinel(self, path):
        assert resolve_path(OBSERVATION, path) is MISSING

    def test_non_mapping_root(self):
        assert resolve_path("tongue", "tongue") is MISSING

    def test_missing_is_falsy(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"


class TestMatchValue:
    """Test single condition semantics."""

    def test_equality(self):
        assert match_value("pale", "pale") is True
        assert match_value("pale", "red") is False

    def test_missing_never_matches(self):
        assert match_value(MISSING, None) is False
        assert match_value(MISSING, "pale") is False

    def test_booleans_only_equal_booleans(self):
        assert match_value(True, True) is True
        assert match_value(1, True) is False
        assert match_value(False, 0) is False

    def test_list_expected_scalar_actual_is_membership(self):
        assert match_value("red", ["red", "dark-red"]) is True
        assert match_value("pale", ["red", "dark-red"]) is False

    def test_list_expected_list_actual_requires_all(self):
        assert match_value(["坠落", "考试"], ["坠落"]) is True
        assert match_value(["坠落", "考试"], ["坠落", "考试"]) is True
        assert match_value(["坠落"], ["坠落", "飞行"]) is False

    def test_mapping_expected(self):
        assert match_value({"lines": {"life": "deep"}}, {"lines.life": "deep"}) is True
        assert match_value({"lines": {"life": "deep"}}, {"lines": {"life": "shallow"}}) is False
        assert match_value("deep", {"life": "deep"}) is False


class TestEvaluateConditions:
    """Test AND semantics across a rule's conditions."""

    def test_empty_conditions_always_match(self):
        assert evaluate_conditions({}, {}) is True
        assert evaluate_conditions({}, OBSERVATION) is True

    def test_all_conditions_must_hold(self):
        conditions = {"tongue.color": "red", "solar.name": "夏至"}
        assert evaluate_conditions(conditions, OBSERVATION) is True

    def test_one_failing_condition_fails_rule(self):
        conditions = {"tongue.color": "red", "solar.name": "冬至"}
        assert evaluate_conditions(conditions, OBSERVATION) is False

    def test_missing_field_fails_without_error(self):
        assert evaluate_conditions({"tongue.color": "red"}, {"solar": {"name": "夏至"}}) is False

    def test_nested_mapping_condition(self):
        assert evaluate_conditions({"palm": {"lines.life": "deep"}}, OBSERVATION) is True

    def test_trace_records_checks_until_first_failure(self):
        steps: list[TraceStep] = []
        conditions = {"tongue.color": "red", "solar.name": "冬至", "dream.emotion": "anxious"}

        assert evaluate_conditions(conditions, OBSERVATION, "r1", steps) is False
        assert [(s.path, s.result) for s in steps] == [
            ("tongue.color", True),
            ("solar.name", False),
        ]
        assert steps[1].rule_id == "r1"
        assert steps[1].actual == "夏至"
        assert steps[1].expected == "冬至"

    def test_trace_reports_missing_as_none(self):
        steps: list[TraceStep] = []
        evaluate_conditions({"pulse.rate": "slow"}, OBSERVATION, "r2", steps)
        assert steps[0].actual is None
        assert steps[0].result is False
