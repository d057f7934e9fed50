import pytest
from src.prodfuse.fuser import fuse_candidates
from src.prodfuse.weights import SOURCE_WEIGHTS


PRICES = [
    {"value": 120.00, "source": "jsonld", "confidence": 0.95},
    {"value": 120.50, "source": "opengraph", "confidence": 0.90},
    {"value": 119.99, "source": "pattern", "confidence": 0.60},
]


def test_priority_jsonld_wins():
    err, result = fuse_candidates(PRICES, {"strategy": "priority"})
    assert err is None
    assert result.value == 120.00
    assert result.source == "jsonld"
    assert result.had_conflict is True
    assert "priority" in result.resolution
    assert "jsonld" in result.resolution


def test_priority_picks_highest_weight_available():
    candidates = [
        {"value": 119.99, "source": "pattern", "confidence": 0.99},
        {"value": 120.50, "source": "opengraph", "confidence": 0.80},
        {"value": 121.00, "source": "context", "confidence": 0.90},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "priority"})
    assert err is None
    best = max(candidates, key=lambda c: SOURCE_WEIGHTS[c["source"]])
    assert result.value == best["value"]
    assert result.source == "opengraph"


def test_priority_ties_broken_by_confidence():
    candidates = [
        {"value": "A", "source": "context", "confidence": 0.5},
        {"value": "B", "source": "context", "confidence": 0.7},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "priority"})
    assert result.value == "B"


def test_confidence_highest_wins():
    candidates = [
        {"value": 120.00, "source": "pattern", "confidence": 0.60},
        {"value": 120.50, "source": "context", "confidence": 0.85},
        {"value": 119.99, "source": "opengraph", "confidence": 0.70},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "confidence"})
    assert err is None
    assert result.value == 120.50
    assert result.source == "context"
    assert "confidence" in result.resolution
    assert all(result.confidence >= c["confidence"] for c in candidates if c["source"] != "context")


def test_confidence_keeps_above_close_runner_up():
    candidates = [
        {"value": "x", "source": "jsonld", "confidence": 0.90},
        {"value": "y", "source": "pattern", "confidence": 0.89},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "confidence"})
    assert result.value == "x"
    assert result.confidence >= 0.89


def test_confidence_ties_broken_by_source_weight():
    candidates = [
        {"value": "low", "source": "pattern", "confidence": 0.8},
        {"value": "high", "source": "microdata", "confidence": 0.8},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "confidence"})
    assert result.value == "high"


def test_voting_weighted_average_within_range():
    candidates = [
        {"value": 120.00, "source": "jsonld", "confidence": 0.95},
        {"value": 120.01, "source": "opengraph", "confidence": 0.90},
        {"value": 119.99, "source": "microdata", "confidence": 0.85},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "voting", "tolerance": 0.01})
    assert err is None
    assert 119.99 <= result.value <= 120.01
    assert result.had_conflict is False
    assert "voting" in result.resolution
    assert "average" in result.resolution
    assert result.source == "jsonld"
    assert set(result.sources) == {"jsonld", "opengraph", "microdata"}


def test_voting_average_leans_to_heavier_sources():
    candidates = [
        {"value": 100.0, "source": "jsonld", "confidence": 1.0},
        {"value": 110.0, "source": "pattern", "confidence": 0.5},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "voting", "tolerance": 0.2})
    # weights 1.0 and 0.15
    assert result.value == pytest.approx((100.0 * 1.0 + 110.0 * 0.15) / 1.15)


def test_voting_without_tolerance_picks_heaviest_cluster():
    candidates = [
        {"value": 120.00, "source": "jsonld", "confidence": 0.95},
        {"value": 120.60, "source": "opengraph", "confidence": 0.80},
        {"value": 120.30, "source": "pattern", "confidence": 0.60},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "voting"})
    assert 120.00 <= result.value <= 120.60
    assert result.value == 120.00
    assert result.had_conflict is True


def test_voting_majority_beats_single_strong_source():
    candidates = [
        {"value": 50, "source": "opengraph", "confidence": 0.9},
        {"value": 60, "source": "microdata", "confidence": 0.6},
        {"value": 60, "source": "context", "confidence": 0.9},
    ]
    # 0.54 vs 0.48 + 0.45
    err, result = fuse_candidates(candidates, {"strategy": "voting"})
    assert result.value == 60
    # microdata carries the heavier single vote inside the winning cluster
    assert result.source == "microdata"


def test_voting_strings_case_insensitive():
    candidates = [
        {"value": "PEUGEOT", "source": "jsonld", "confidence": 0.95},
        {"value": "Peugeot", "source": "opengraph", "confidence": 0.80},
        {"value": "PEUGEOT", "source": "pattern", "confidence": 0.60},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "voting"})
    assert err is None
    assert result.value.upper() == "PEUGEOT"
    assert result.value == "PEUGEOT"
    assert result.had_conflict is False


def test_voting_strings_casing_tie_uses_first_seen():
    candidates = [
        {"value": "Delphi", "source": "context", "confidence": 0.7},
        {"value": "DELPHI", "source": "context", "confidence": 0.7},
        {"value": "Bosch", "source": "pattern", "confidence": 0.7},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "voting"})
    assert result.value == "Delphi"


def test_consensus_two_sources_agree():
    candidates = [
        {"value": 120.00, "source": "jsonld", "confidence": 0.95},
        {"value": 120.00, "source": "opengraph", "confidence": 0.90},
        {"value": 119.50, "source": "pattern", "confidence": 0.60},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "consensus", "consensusCount": 2})
    assert err is None
    assert result.value == 120.00
    assert "consensus" in result.resolution
    assert "2" in result.resolution


def test_consensus_shared_value_beats_higher_priority():
    candidates = [
        {"value": "X1", "source": "jsonld", "confidence": 0.95},
        {"value": "Y2", "source": "pattern", "confidence": 0.60},
        {"value": "y2", "source": "context", "confidence": 0.50},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "consensus", "consensus_count": 2})
    assert result.value.upper() == "Y2"


def test_consensus_falls_back_to_priority():
    candidates = [
        {"value": 120.00, "source": "jsonld", "confidence": 0.95},
        {"value": 119.00, "source": "opengraph", "confidence": 0.90},
        {"value": 118.00, "source": "pattern", "confidence": 0.60},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "consensus", "consensusCount": 2})
    assert err is None
    assert result.value == 120.00
    assert result.source == "jsonld"
    assert "priority" in result.resolution
    assert "consensus not reached" in result.resolution


def test_consensus_count_unreachable_is_not_an_error():
    candidates = [
        {"value": "A", "source": "pattern", "confidence": 0.9},
        {"value": "A", "source": "context", "confidence": 0.9},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "consensus", "consensusCount": 5})
    assert err is None
    assert result.value == "A"
    assert result.source == "context"
    assert "priority" in result.resolution


def test_first_ignores_weight_and_confidence():
    candidates = [
        {"value": 120.50, "source": "pattern", "confidence": 0.60},
        {"value": 120.00, "source": "jsonld", "confidence": 0.95},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "first"})
    assert err is None
    assert result.value == 120.50
    assert result.source == "pattern"
    assert "first" in result.resolution


def test_voting_identical_ints_stay_ints():
    candidates = [
        {"value": 10, "source": "jsonld", "confidence": 0.9},
        {"value": 10, "source": "pattern", "confidence": 0.5},
        {"value": 12, "source": "context", "confidence": 0.4},
    ]
    err, result = fuse_candidates(candidates, {"strategy": "voting"})
    assert result.value == 10
    assert isinstance(result.value, int)
    assert "2 of 3 candidates agree" in result.resolution
