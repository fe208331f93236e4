"""Tests for the match score and relevance ordering."""

from datetime import UTC, datetime, timedelta

from adopte.offers.matching import calculate_match_score, relevance_key


class TestCalculateMatchScore:
    def test_half_of_required_skills(self):
        assert calculate_match_score(["React"], ["React", "Node.js"]) == 50

    def test_all_required_skills(self):
        assert calculate_match_score(["React", "Node.js", "Docker"], ["React", "Node.js"]) == 100

    def test_no_overlap(self):
        assert calculate_match_score(["Go"], ["React", "Node.js"]) == 0

    def test_offer_without_skills_scores_zero(self):
        assert calculate_match_score(["React"], []) == 0

    def test_student_without_skills_scores_zero(self):
        assert calculate_match_score([], ["React"]) == 0

    def test_case_insensitive(self):
        assert calculate_match_score(["react", "NODE.JS"], ["React", "Node.js"]) == 100

    def test_rounds_to_nearest(self):
        assert calculate_match_score(["A"], ["A", "B", "C"]) == 33
        assert calculate_match_score(["A", "B"], ["A", "B", "C"]) == 67

    def test_half_rounds_up(self):
        required = [str(i) for i in range(8)]
        # 1/8 = 12.5%
        assert calculate_match_score(["0"], required) == 13

    def test_extra_student_skills_do_not_change_score(self):
        base = calculate_match_score(["React"], ["React", "Vue.js"])
        assert calculate_match_score(["React", "Go", "Rust", "SQL"], ["React", "Vue.js"]) == base

    def test_always_within_bounds(self):
        offer = ["A", "B", "C", "D", "E", "F", "G"]
        for n in range(len(offer) + 1):
            score = calculate_match_score(offer[:n], offer)
            assert 0 <= score <= 100


class TestRelevanceKey:
    def test_orders_by_score_then_recency(self):
        now = datetime.now(UTC)
        rows = [
            (50, now - timedelta(days=2), "b"),
            (100, now - timedelta(days=5), "a"),
            (50, now, "c"),
        ]
        ordered = sorted(rows, key=lambda r: relevance_key(*r))
        assert [r[2] for r in ordered] == ["a", "c", "b"]

    def test_ties_broken_by_id(self):
        now = datetime.now(UTC)
        rows = [(10, now, "z"), (10, now, "a")]
        ordered = sorted(rows, key=lambda r: relevance_key(*r))
        assert [r[2] for r in ordered] == ["a", "z"]
