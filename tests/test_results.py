import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import logging

import pytest

import domain_combos as domain


@pytest.mark.parametrize("value", [True, "true", "available"])
def test_is_available_truthy(value):
    assert domain.is_available(value)


@pytest.mark.parametrize("value", [False, "false", None, "taken", "yes", 1])
def test_is_available_falsy(value):
    assert not domain.is_available(value)


def test_normalize_price():
    assert domain.normalize_price(1500) == 15.0
    assert domain.normalize_price(45) == 45
    assert domain.normalize_price(1000) == 1000


def test_extract_price_priority():
    assert domain.extract_price({"price": 12990000}) == 129900.0
    assert domain.extract_price({"priceInfo": {"price": 45}}) == 45
    assert domain.extract_price({"period": {"price": 2000}}) == 20.0
    assert domain.extract_price({"pricing": {"price": 9}}) == 9
    assert domain.extract_price({"price": 30, "priceInfo": {"price": 99}}) == 30
    assert domain.extract_price({"priceInfo": {}, "pricing": {"price": 7}}) == 7
    assert domain.extract_price({"domain": "ab.com"}) is None


def test_extract_price_ignores_non_numeric():
    assert domain.extract_price({"domain": "ab.com", "price": "12.99"}) is None
    assert domain.extract_price({"price": True}) is None
    assert domain.extract_price({"price": "12.99", "priceInfo": {"price": 45}}) == 45


def test_normalize_result_without_price():
    res = domain.normalize_result({"domain": "ab.com", "available": "true"})
    assert res == domain.LookupResult("ab.com", True, None)
    assert domain.match_to_dict(domain.Match(res.domain, res.price)) == {"domain": "ab.com"}


def test_classify_budget():
    cheap = domain.LookupResult("ab.com", True, 50)
    assert domain.classify(cheap, 40) is domain.Outcome.OVER_BUDGET
    assert domain.classify(cheap, None) is domain.Outcome.AVAILABLE
    assert domain.classify(cheap, 50) is domain.Outcome.AVAILABLE
    unpriced = domain.LookupResult("ab.com", True, None)
    assert domain.classify(unpriced, 1) is domain.Outcome.AVAILABLE
    taken = domain.LookupResult("ab.com", False, 5)
    assert domain.classify(taken, 40) is domain.Outcome.TAKEN


def test_record_keeps_only_matches(tmp_path):
    cfg = domain.Config(suffixes=(".com",), max_price=40, output_file=tmp_path / "out.json")
    scanner = domain.DomainScanner(cfg)
    scanner.record(domain.LookupResult("aa.com", True, 50), ".com")
    scanner.record(domain.LookupResult("ab.com", False, None), ".com")
    scanner.record(domain.LookupResult("ac.com", True, 15.0), ".com")
    scanner.record(domain.LookupResult("ad.com", True, None), ".com")
    assert scanner.results_to_dict() == {
        ".com": [{"domain": "ac.com", "price": 15.0}, {"domain": "ad.com"}]
    }


def test_process_batch_matches_by_domain():
    scanner = domain.DomainScanner(domain.Config(suffixes=(".com",)))
    results = [
        {"domain": "AC.com", "available": True},
        {"domain": "zz.com", "available": True},
        {"domain": "aa.com", "available": "available", "price": 1200},
    ]
    scanner.process_batch(["aa.com", "ab.com", "ac.com"], results, ".com")
    assert scanner.results_to_dict() == {
        ".com": [{"domain": "aa.com", "price": 12.0}, {"domain": "AC.com"}]
    }


def test_status_lines(caplog):
    caplog.set_level(logging.INFO, logger="domain_combos")
    scanner = domain.DomainScanner(domain.Config(max_price=10))
    scanner.record(domain.LookupResult("aa.com", True, 5), ".com")
    scanner.record(domain.LookupResult("ab.com", True, 50), ".com")
    scanner.record(domain.LookupResult("ac.com", False), ".com")
    assert "Available: aa.com $5.00" in caplog.text
    assert "Available but too expensive: ab.com $50.00 (max: $10.00)" in caplog.text
    assert "Taken: ac.com" in caplog.text


def test_verbose_suppresses_status_lines(caplog):
    caplog.set_level(logging.INFO, logger="domain_combos")
    scanner = domain.DomainScanner(domain.Config(verbose=True))
    scanner.process_batch(["aa.com"], [{"domain": "aa.com", "available": True}], ".com")
    assert "Available: aa.com" not in caplog.text
    assert "Domain response" in caplog.text
    assert scanner.available[".com"] == [domain.Match("aa.com")]
