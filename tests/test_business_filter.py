"""
Tests for business filtering rules.

These tests verify:
- Self-match detection in both directions
- Directory/aggregator exclusion
- Generic category detection and industry resolution
- Search query fallback from the business name
"""

import pytest

from jake.utils.business_filter import (
    DEFAULT_SEARCH_QUERY,
    extract_industry_from_name,
    is_directory_listing,
    is_generic_category,
    is_self_match,
    resolve_industry,
)


class TestSelfMatch:
    """is_self_match()"""

    def test_candidate_contains_target(self):
        assert is_self_match("Joe's Coffee Downtown", "Joe's Coffee")

    def test_target_contains_candidate(self):
        assert is_self_match("Joe's Coffee", "Joe's Coffee Downtown")

    def test_case_insensitive(self):
        assert is_self_match("JOE'S COFFEE", "joe's coffee")

    def test_different_business(self):
        assert not is_self_match("Rival Roasters", "Joe's Coffee")

    def test_empty_names_never_match(self):
        assert not is_self_match("", "Joe's Coffee")
        assert not is_self_match("Rival Roasters", "")


class TestDirectoryListing:
    """is_directory_listing()"""

    @pytest.mark.parametrize("name", [
        "Yelp",
        "Best Coffee - Yelp",
        "Better Business Bureau",
        "HomeAdvisor Pros",
        "Yellow Pages Portland",
    ])
    def test_directories(self, name):
        assert is_directory_listing(name)

    def test_regular_business(self):
        assert not is_directory_listing("Stumptown Coffee Roasters")


class TestGenericCategory:
    """is_generic_category() and resolve_industry()"""

    @pytest.mark.parametrize("category", [
        "point_of_interest",
        "point of interest",
        "Establishment",
        "premise",
        "",
        None,
    ])
    def test_generic(self, category):
        assert is_generic_category(category)

    @pytest.mark.parametrize("category", ["cafe", "plumber", "dentist", "car_repair"])
    def test_specific(self, category):
        assert not is_generic_category(category)

    def test_explicit_industry_wins(self):
        assert resolve_industry("Specialty Coffee", "bakery") == "Specialty Coffee"

    def test_detected_category_used_when_blank(self):
        assert resolve_industry(None, "car_repair") == "car repair"
        assert resolve_industry("   ", "cafe") == "cafe"

    def test_generic_category_never_fills_blank_industry(self):
        assert resolve_industry(None, "point_of_interest") is None
        assert resolve_industry("", "establishment") is None

    def test_nothing_detected(self):
        assert resolve_industry(None, None) is None


class TestIndustryFromName:
    """extract_industry_from_name()"""

    def test_keyword_in_name(self):
        assert extract_industry_from_name("Joe's Coffee") == "coffee"
        assert extract_industry_from_name("Smith Dental Care") == "dental"

    def test_first_listed_keyword_wins(self):
        # "cafe" is listed before "coffee"
        assert extract_industry_from_name("Cafe Coffee House") == "cafe"

    def test_falls_back_to_default(self):
        assert extract_industry_from_name("Acme Holdings") == DEFAULT_SEARCH_QUERY
