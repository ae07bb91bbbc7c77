from lead_discovery.models import Contact, SearchResult
from lead_discovery.scoring import clamp_score, normalize_confidence_score, parse_confidence


def test_clamp_score_bounds_and_rounding() -> None:
    assert clamp_score(-5) == 0
    assert clamp_score(150) == 100
    assert clamp_score(72.6) == 73
    assert clamp_score(float("nan")) == 0


def test_normalize_confidence_score() -> None:
    assert normalize_confidence_score(0.87) == 87
    assert normalize_confidence_score(1.5) == 100
    assert normalize_confidence_score(-0.2) == 0


def test_parse_confidence_handles_ratios_and_percentages() -> None:
    assert parse_confidence({"confidence": 90}) == 90
    assert parse_confidence({"score": "0.95"}) == 95
    assert parse_confidence({"confidence": 1}) == 1
    assert parse_confidence({"score": "1.0"}) == 1
    assert parse_confidence({"confidence_score": 120}) == 100
    assert parse_confidence({"score": "bad"}) is None
    assert parse_confidence({"confidence": True}) is None
    assert parse_confidence({}) is None


def test_models_clamp_confidence_and_probability() -> None:
    assert SearchResult(content="x", confidence=140, source="s").confidence == 100
    assert SearchResult(content="x", confidence=-3, source="s").confidence == 0
    assert Contact(id=1, company_id=1, name="Alice Walker", probability=250).probability == 100
    assert Contact(id=1, company_id=1, name="Alice Walker").probability is None
