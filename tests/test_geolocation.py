#!/usr/bin/env python3
"""
Test suite for cinefest/geolocation.py — coordinate parsing and IP fallback
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from cinefest.geolocation import (
    LocationProvider, approximate_location_from_ip, parse_coordinate,
)
from cinefest.models import Coordinate


def ip_response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    return resp


class TestParseCoordinate:

    @pytest.mark.parametrize("text,expected", [
        ("48.8566, 2.3522", Coordinate(48.8566, 2.3522)),
        ("-33.9,151.2", Coordinate(-33.9, 151.2)),
        ("  45 , 5  ", Coordinate(45.0, 5.0)),
    ])
    def test_valid(self, text, expected):
        assert parse_coordinate(text) == expected

    @pytest.mark.parametrize("text", ["", "Paris", "48.8", "95, 2", "48.8; 2.3", None])
    def test_invalid(self, text):
        assert parse_coordinate(text) is None


class TestIpLocation:

    def test_first_service_answers(self):
        with patch('cinefest.geolocation.requests.get',
                   return_value=ip_response({'latitude': 45.76, 'longitude': 4.83})) as get:
            assert approximate_location_from_ip() == Coordinate(45.76, 4.83)
        assert get.call_count == 1

    def test_falls_back_to_next_service(self):
        responses = [
            requests.exceptions.ConnectionError("down"),
            ip_response({'success': True, 'latitude': 43.3, 'longitude': 5.4}),
        ]
        with patch('cinefest.geolocation.requests.get', side_effect=responses):
            assert approximate_location_from_ip() == Coordinate(43.3, 5.4)

    def test_unavailable(self):
        with patch('cinefest.geolocation.requests.get',
                   return_value=ip_response({'success': False})):
            assert approximate_location_from_ip() is None


class TestLocationProvider:

    def test_override_skips_network(self):
        here = Coordinate(1.0, 2.0)
        with patch('cinefest.geolocation.requests.get') as get:
            assert LocationProvider(override=here).current() == here
        get.assert_not_called()

    def test_no_ip_no_override(self):
        assert LocationProvider(use_ip=False).current() is None
