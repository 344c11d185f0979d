"""
Tests for request CRS negotiation.
"""

import logging

from ogc_loader.crs import RequestCrsCache, find_matching_crs, get_request_crs
from ogc_loader.models import DEFAULT_CRS

EPSG_4326 = "http://www.opengis.net/def/crs/EPSG/0/4326"
EPSG_25832 = "http://www.opengis.net/def/crs/EPSG/0/25832"


class TestFindMatchingCrs:

    def test_short_epsg_form_matches_uri(self):
        assert find_matching_crs("EPSG:4326", [EPSG_4326]) == EPSG_4326

    def test_short_epsg_form_without_match(self):
        assert find_matching_crs("EPSG:4326", ["http://www.opengis.net/def/crs/EPSG/0/1111"]) is None

    def test_full_uri_requires_exact_match(self):
        assert find_matching_crs(EPSG_25832, [EPSG_4326, EPSG_25832]) == EPSG_25832
        assert find_matching_crs(EPSG_25832 + "/", [EPSG_25832]) is None

    def test_only_epsg_0_authority_version_is_recognized(self):
        assert find_matching_crs("EPSG:4326", ["http://www.opengis.net/def/crs/EPSG/9.8.15/4326"]) is None

    def test_empty_or_missing_list(self):
        assert find_matching_crs("EPSG:4326", None) is None
        assert find_matching_crs("EPSG:4326", []) is None


class TestGetRequestCrs:

    def test_configured_crs_always_wins(self):
        configured = "http://www.opengis.net/def/crs/EPSG/0/3035"
        assert get_request_crs("EPSG:4326", [EPSG_4326], configured) == configured

    def test_map_crs_match(self):
        assert get_request_crs("EPSG:25832", [EPSG_4326, EPSG_25832], None) == EPSG_25832

    def test_fallback_to_crs84_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ogc_loader.crs"):
            result = get_request_crs("EPSG:3857", [EPSG_4326], None)

        assert result == DEFAULT_CRS
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "EPSG:3857" in warnings[0].getMessage()

    def test_fallback_when_server_lists_nothing(self):
        assert get_request_crs("EPSG:25832", None, None) == DEFAULT_CRS


class TestRequestCrsCache:

    def test_resolves_once_per_map_crs(self, caplog):
        cache = RequestCrsCache()

        with caplog.at_level(logging.WARNING, logger="ogc_loader.crs"):
            first = cache.resolve("EPSG:3857", [EPSG_4326])
            second = cache.resolve("EPSG:3857", [EPSG_4326])

        assert first == second == DEFAULT_CRS
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1
        assert "EPSG:3857" in cache
        assert len(cache) == 1

    def test_keys_by_map_crs(self):
        cache = RequestCrsCache()
        assert cache.resolve("EPSG:4326", [EPSG_4326, EPSG_25832]) == EPSG_4326
        assert cache.resolve("EPSG:25832", [EPSG_4326, EPSG_25832]) == EPSG_25832
        assert len(cache) == 2

    def test_configured_crs(self):
        cache = RequestCrsCache(configured_crs=EPSG_25832)
        assert cache.resolve("EPSG:4326", [EPSG_4326]) == EPSG_25832
