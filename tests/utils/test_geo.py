"""
Tests for distance and geocoding helpers.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from homster.utils.geo import geocode_address, haversine_km


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(22.7196, 75.8577, 22.7196, 75.8577) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)

    def test_symmetric(self):
        there = haversine_km(22.7196, 75.8577, 23.2599, 77.4126)
        back = haversine_km(23.2599, 77.4126, 22.7196, 75.8577)

        assert there == pytest.approx(back)


@pytest.fixture
def maps_config():
    with patch("homster.utils.geo.config") as mock_config:
        mock_config.GOOGLE_MAPS_API_KEY = "maps-key"
        mock_config.DEFAULT_LATITUDE = 22.7196
        mock_config.DEFAULT_LONGITUDE = 75.8577
        yield mock_config


class TestGeocodeAddress:
    def test_no_api_key_uses_default(self, maps_config):
        maps_config.GOOGLE_MAPS_API_KEY = ""

        with patch("homster.utils.geo.requests.get") as mock_get:
            assert geocode_address("12 MG Road, Indore") == (22.7196, 75.8577)

        mock_get.assert_not_called()

    def test_returns_first_match(self, maps_config):
        response = MagicMock()
        response.json.return_value = {
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": 22.75, "lng": 75.9}}}],
        }

        with patch("homster.utils.geo.requests.get", return_value=response) as mock_get:
            assert geocode_address("12 MG Road, Indore") == (22.75, 75.9)

        params = mock_get.call_args.kwargs["params"]
        assert params == {"address": "12 MG Road, Indore", "key": "maps-key"}

    def test_zero_results_uses_default(self, maps_config):
        response = MagicMock()
        response.json.return_value = {"status": "ZERO_RESULTS", "results": []}

        with patch("homster.utils.geo.requests.get", return_value=response):
            assert geocode_address("nowhere") == (22.7196, 75.8577)

    def test_request_failure_uses_default(self, maps_config):
        with patch(
            "homster.utils.geo.requests.get",
            side_effect=requests.ConnectionError("offline"),
        ):
            assert geocode_address("12 MG Road, Indore") == (22.7196, 75.8577)
