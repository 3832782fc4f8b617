"""Tests for decoding stored analyses into the canonical form."""

import json

from call_analytics.models import AnalysisRow, ComplaintInfo, MistakeInfo
from call_analytics.normalizer import (
    build_analysis_record,
    decode_json_field,
    is_legacy_tag,
    merge_complaints,
    normalize_analysis,
    parse_segments,
    to_count,
)


class TestDecodeJsonField:
    def test_decodes_json_text(self):
        assert decode_json_field('{"a": 1}', {}) == {"a": 1}

    def test_passes_decoded_values_through(self):
        value = {"a": 1}
        assert decode_json_field(value, {}) is value

    def test_null_and_missing_give_default(self):
        assert decode_json_field(None, []) == []
        assert decode_json_field("null", []) == []

    def test_malformed_text_gives_default(self):
        assert decode_json_field("{not json", {}, field_name="criteria_scores") == {}


class TestToCount:
    def test_coerces_numbers_and_numeric_text(self):
        assert to_count(3) == 3
        assert to_count(2.9) == 2
        assert to_count("4") == 4

    def test_unreadable_values_are_zero(self):
        assert to_count(None) == 0
        assert to_count(True) == 0
        assert to_count("many") == 0

    def test_non_finite_floats_are_zero(self):
        assert to_count(float("inf")) == 0
        assert to_count(float("nan")) == 0


class TestIsLegacyTag:
    def test_short_key_without_period_is_tag(self):
        assert is_legacy_tag("price")

    def test_sentence_is_text(self):
        assert not is_legacy_tag("Too expensive.")

    def test_long_key_is_text(self):
        assert not is_legacy_tag("x" * 50)
        assert is_legacy_tag("x" * 49)


class TestNormalizeAnalysis:
    def test_nested_format(self, nested_row):
        normalized = normalize_analysis(nested_row, ["Sales"])

        assert normalized.criteria_scores == {"Greeting": 80, "Closing": 60}
        assert normalized.mistakes == {
            "Sales": {
                "No greeting": MistakeInfo(
                    count=2, recommendation="Greet the client", tag="greeting"
                )
            }
        }
        assert normalized.complaints == {
            "price": ComplaintInfo(
                count=2, examples=["Too expensive"], text_counts={"Too expensive": 2}
            )
        }

    def test_legacy_and_nested_formats_normalize_identically(
        self, nested_row, legacy_row
    ):
        """Two occurrences stored as flat lists equal the same data stored as maps."""
        nested = normalize_analysis(nested_row, ["Sales"])
        legacy = normalize_analysis(legacy_row, ["Sales"])

        assert legacy.mistakes == nested.mistakes
        assert legacy.complaints == nested.complaints

    def test_oldest_complaint_format(self):
        row = AnalysisRow(
            client_complaints={"price": 3, "The price is too high.": 2, "delivery": "1"}
        )

        complaints = normalize_analysis(row).complaints

        assert complaints["price"] == ComplaintInfo(count=3)
        assert complaints["delivery"] == ComplaintInfo(count=1)
        assert complaints["other"] == ComplaintInfo(
            count=2,
            examples=["The price is too high."],
            text_counts={"The price is too high.": 2},
        )

    def test_complaint_list_is_read_as_objections(self):
        row = AnalysisRow(
            client_complaints=[{"text": "Too slow", "tag": "delivery"}, {"text": "Meh"}]
        )

        complaints = normalize_analysis(row).complaints

        assert complaints["delivery"].count == 1
        assert complaints["other"].examples == ["Meh"]

    def test_count_only_mistakes(self):
        row = AnalysisRow(category_mistakes={"Sales": {"Interrupts": 3}})

        mistakes = normalize_analysis(row).mistakes

        assert mistakes == {
            "Sales": {"Interrupts": MistakeInfo(count=3, recommendation="", tag="other")}
        }

    def test_mistake_object_without_count_counts_once(self):
        row = AnalysisRow(
            category_mistakes={"Sales": {"Interrupts": {"recommendation": "Listen"}}}
        )

        info = normalize_analysis(row).mistakes["Sales"]["Interrupts"]

        assert info == MistakeInfo(count=1, recommendation="Listen", tag="other")

    def test_first_non_empty_recommendation_wins(self):
        row = AnalysisRow(
            category="Sales",
            mistakes=[
                {"mistake": "Rushed", "recommendation": "", "tag": ""},
                {"mistake": "Rushed", "recommendation": "Slow down", "tag": "closing"},
                {"mistake": "Rushed", "recommendation": "Breathe", "tag": "other"},
            ],
        )

        info = normalize_analysis(row).mistakes["Sales"]["Rushed"]

        assert info == MistakeInfo(count=3, recommendation="Slow down", tag="other")

    def test_legacy_mistakes_fall_back_to_first_known_category(self):
        row = AnalysisRow(mistakes=[{"recommendation": "Smile", "tag": "greeting"}])

        assert normalize_analysis(row, ["Support", "Sales"]).mistakes == {
            "Support": {
                "Unknown mistake": MistakeInfo(
                    count=1, recommendation="Smile", tag="greeting"
                )
            }
        }
        assert list(normalize_analysis(row).mistakes) == ["default"]

    def test_malformed_field_does_not_affect_others(self, legacy_row):
        legacy_row.criteria_scores = "{not json"

        normalized = normalize_analysis(legacy_row, ["Sales"])

        assert normalized.criteria_scores == {}
        assert normalized.mistakes["Sales"]["No greeting"].count == 2
        assert normalized.complaints["price"].count == 2

    def test_malformed_nested_mistakes_do_not_fall_back_to_legacy(self, legacy_row):
        legacy_row.category_mistakes = "[1, 2]"

        assert normalize_analysis(legacy_row, ["Sales"]).mistakes == {}

    def test_non_numeric_scores_are_dropped(self):
        row = AnalysisRow(criteria_scores={"Greeting": 80, "Tone": "good", "Pace": True})

        assert normalize_analysis(row).criteria_scores == {"Greeting": 80}

    def test_empty_row(self):
        normalized = normalize_analysis(AnalysisRow())

        assert normalized.criteria_scores == {}
        assert normalized.mistakes == {}
        assert normalized.complaints == {}


class TestMergeComplaints:
    def test_counts_sum_and_examples_deduplicate(self):
        target = {
            "price": ComplaintInfo(
                count=2, examples=["Too expensive"], text_counts={"Too expensive": 2}
            )
        }
        source = {
            "price": ComplaintInfo(
                count=3,
                examples=["Too expensive", "No discount"],
                text_counts={"Too expensive": 3},
            )
        }

        merge_complaints(target, source)

        assert target["price"] == ComplaintInfo(
            count=5,
            examples=["Too expensive", "No discount"],
            text_counts={"Too expensive": 5},
        )


class TestParseSegments:
    def test_decodes_json_text(self, timed_segments):
        segments = parse_segments(json.dumps(timed_segments))

        assert [segment.speaker for segment in segments] == ["manager", "client", "manager"]
        assert segments[1].timestamp == "0:05"

    def test_skips_non_dict_entries(self):
        segments = parse_segments([{"speaker": "client", "text": "hi"}, "noise", None])

        assert len(segments) == 1
        assert segments[0].timestamp is None

    def test_undecodable_input_gives_empty_list(self):
        assert parse_segments("[oops") == []
        assert parse_segments('{"speaker": "client"}') == []
        assert parse_segments(None) == []


class TestBuildAnalysisRecord:
    def test_carries_category_score_and_segments(self, nested_row, timed_segments):
        record = build_analysis_record(nested_row, timed_segments, ["Sales"])

        assert record.category == "Sales"
        assert record.overall_score == 70
        assert len(record.segments) == 3
        assert record.normalized.criteria_scores["Closing"] == 60


class TestNonFiniteNumbers:
    def test_out_of_range_scores_are_dropped(self):
        row = AnalysisRow(criteria_scores='{"Greeting": 1e400, "Closing": 60}')

        assert normalize_analysis(row).criteria_scores == {"Closing": 60}

    def test_nan_constant_invalidates_the_field(self):
        row = AnalysisRow(
            criteria_scores='{"Greeting": NaN}',
            client_complaints={"price": 2},
        )

        normalized = normalize_analysis(row)

        assert normalized.criteria_scores == {}
        assert normalized.complaints["price"].count == 2

    def test_decoded_non_finite_scores_are_dropped(self):
        row = AnalysisRow(
            criteria_scores={"Greeting": float("inf"), "Tone": float("nan"), "Pace": 10**400}
        )

        assert normalize_analysis(row).criteria_scores == {}

    def test_out_of_range_complaint_count_is_zero(self):
        row = AnalysisRow(client_complaints='{"price": 1e400, "delivery": 1}')

        complaints = normalize_analysis(row).complaints

        assert complaints["price"].count == 0
        assert complaints["delivery"].count == 1

    def test_non_finite_overall_score_is_dropped(self):
        record = build_analysis_record(AnalysisRow(overall_score=float("inf")))

        assert record.overall_score is None
