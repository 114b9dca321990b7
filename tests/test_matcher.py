"""
RegistryMatcher 測試：substring 比對、fuzzy matcher 輸出驗證、策略切換。
OpenAI client 全部以 MagicMock 取代。
"""
import json
import pytest
from unittest.mock import MagicMock

from figma_atoms.matcher import (
    STRATEGY_ORACLE,
    STRATEGY_RESIDUE,
    STRATEGY_SUBSTRING,
    FuzzyMatcher,
    OracleError,
    RegistryMatcher,
    substring_match,
    validate_partition,
)
from figma_atoms.records import Category, ComponentRecord

REGISTRY = """
export const registry = {
  PrimaryButton: lazy(() => import('./PrimaryButton')),
  'badge-stack': lazy(() => import('./BadgeStack')),
  StatusBarDark: lazy(() => import('./StatusBar')),
};
"""


def comp(name, category=Category.OTHER):
    return ComponentRecord(name=name, id=f"id-{name}", path=(name,), type="COMPONENT", category=category)


def oracle_returning(payload):
    client = MagicMock()
    content = payload if isinstance(payload, str) else json.dumps(payload)
    client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content=content))]
    return FuzzyMatcher(api_key="sk-test", client=client), client


# ─── substring_match ────────────────────────────────────────────────────────

class TestSubstringMatch:
    def test_case_insensitive_hit_returns_identifier(self):
        assert substring_match("primarybutton", REGISTRY) == "PrimaryButton"

    def test_partial_name_widens_to_identifier(self):
        assert substring_match("StatusBar", REGISTRY) == "StatusBarDark"

    def test_miss(self):
        assert substring_match("UserAvatar", REGISTRY) is None

    def test_empty_name_never_matches(self):
        assert substring_match("", REGISTRY) is None

    def test_convention_drift_is_a_miss(self):
        assert substring_match("BadgeStack Small", REGISTRY) is None


# ─── validate_partition ─────────────────────────────────────────────────────

class TestValidatePartition:
    def test_well_formed(self):
        analysis = {"existing": [{"originalName": "A", "matchedName": "a-reg"}], "new": ["B"]}
        assert validate_partition(["A", "B"], analysis) == {"A": "a-reg", "B": None}

    def test_missing_name_is_new(self):
        analysis = {"existing": [{"originalName": "A", "matchedName": "a-reg"}], "new": []}
        assert validate_partition(["A", "B"], analysis) == {"A": "a-reg", "B": None}

    def test_name_in_both_lists_is_new(self):
        analysis = {"existing": [{"originalName": "A", "matchedName": "a-reg"}], "new": ["A"]}
        assert validate_partition(["A"], analysis) == {"A": None}

    def test_invented_names_are_ignored(self):
        analysis = {"existing": [{"originalName": "Ghost", "matchedName": "g"}], "new": ["Other"]}
        assert validate_partition(["A"], analysis) == {"A": None}

    def test_empty_matched_name_is_new(self):
        analysis = {"existing": [{"originalName": "A", "matchedName": ""}], "new": []}
        assert validate_partition(["A"], analysis) == {"A": None}

    @pytest.mark.parametrize("analysis", [
        None, [], "oops", {"existing": "x", "new": 3}, {"existing": [1, None, {"matchedName": "x"}]},
    ])
    def test_degenerate_output_routes_everything_to_new(self, analysis):
        assert validate_partition(["A", "B"], analysis) == {"A": None, "B": None}


# ─── FuzzyMatcher ───────────────────────────────────────────────────────────

class TestFuzzyMatcher:
    def test_request_is_pinned_and_json(self):
        oracle, client = oracle_returning({"existing": [], "new": ["A"]})
        assert oracle.compare("reg", ["A"]) == {"existing": [], "new": ["A"]}
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 500
        assert kwargs["response_format"] == {"type": "json_object"}
        assert '"A"' in kwargs["messages"][1]["content"]
        assert "Registry:\nreg" in kwargs["messages"][1]["content"]

    def test_invalid_json_raises(self):
        oracle, _ = oracle_returning("not json")
        with pytest.raises(OracleError):
            oracle.compare("reg", ["A"])

    def test_non_object_raises(self):
        oracle, _ = oracle_returning("[1, 2]")
        with pytest.raises(OracleError):
            oracle.compare("reg", ["A"])


# ─── RegistryMatcher ────────────────────────────────────────────────────────

class TestRegistryMatcher:
    def test_registry_absent_marks_all_new(self):
        components = [comp(n) for n in ("A", "B", "C", "D", "E")]
        result = RegistryMatcher().match(components, None)
        assert result.existing == []
        assert [c.name for c in result.new] == ["A", "B", "C", "D", "E"]
        assert result.registry_checked is False

    def test_substring_only(self):
        components = [comp("PrimaryButton"), comp("UserAvatar")]
        result = RegistryMatcher(strategy=STRATEGY_SUBSTRING).match(components, REGISTRY)
        assert [m.component.name for m in result.existing] == ["PrimaryButton"]
        assert result.existing[0].matched_name == "PrimaryButton"
        assert [c.name for c in result.new] == ["UserAvatar"]
        assert result.registry_checked is True

    def test_without_oracle_strategy_falls_back_to_substring(self):
        assert RegistryMatcher(strategy=STRATEGY_ORACLE).strategy == STRATEGY_SUBSTRING

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            RegistryMatcher(strategy="magic")

    def test_residue_sends_only_unmatched_names(self):
        oracle, client = oracle_returning({
            "existing": [{"originalName": "BadgeStack Small", "matchedName": "badge-stack"}],
            "new": ["UserAvatar"],
        })
        components = [comp("PrimaryButton"), comp("BadgeStack Small"), comp("UserAvatar")]
        result = RegistryMatcher(oracle=oracle, strategy=STRATEGY_RESIDUE).match(components, REGISTRY)
        sent = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "PrimaryButton" not in sent.split("Components:")[1]
        assert {m.component.name: m.matched_name for m in result.existing} == {
            "PrimaryButton": "PrimaryButton",
            "BadgeStack Small": "badge-stack",
        }
        assert [c.name for c in result.new] == ["UserAvatar"]

    def test_residue_skips_oracle_when_everything_matched(self):
        oracle, client = oracle_returning({"existing": [], "new": []})
        result = RegistryMatcher(oracle=oracle).match([comp("PrimaryButton")], REGISTRY)
        client.chat.completions.create.assert_not_called()
        assert len(result.existing) == 1

    def test_oracle_strategy_is_authoritative(self):
        oracle, client = oracle_returning({"existing": [], "new": ["PrimaryButton"]})
        result = RegistryMatcher(oracle=oracle, strategy=STRATEGY_ORACLE).match([comp("PrimaryButton")], REGISTRY)
        assert result.existing == []
        assert [c.name for c in result.new] == ["PrimaryButton"]
        assert result.analysis == {"existing": [], "new": ["PrimaryButton"]}

    def test_oracle_dropping_names_still_partitions(self):
        oracle, _ = oracle_returning({"existing": [], "new": []})
        components = [comp("X1"), comp("X2"), comp("X3")]
        result = RegistryMatcher(oracle=oracle, strategy=STRATEGY_ORACLE).match(components, REGISTRY)
        assert len(result.existing) + len(result.new) == 3
        assert [c.name for c in result.new] == ["X1", "X2", "X3"]

    def test_oracle_failure_is_recorded_not_raised(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("rate limited")
        oracle = FuzzyMatcher(client=client)
        result = RegistryMatcher(oracle=oracle).match([comp("PrimaryButton"), comp("UserAvatar")], REGISTRY)
        assert result.oracle_error == "rate limited"
        assert [m.component.name for m in result.existing] == ["PrimaryButton"]
        assert [c.name for c in result.new] == ["UserAvatar"]

    def test_duplicate_names_share_a_bucket(self):
        components = [comp("PrimaryButton"), comp("PrimaryButton"), comp("UserAvatar")]
        result = RegistryMatcher().match(components, REGISTRY)
        assert len(result.existing) == 2
        assert len(result.new) == 1
        assert len(result) == 3
