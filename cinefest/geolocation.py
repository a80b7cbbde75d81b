#!/usr/bin/env python3
"""
User position for the nearest-festival query

Resolution order: explicit coordinate (config or command line), then an
approximate position from the public IP, then unavailable (None).
"""

import logging
import re
from typing import Optional

import requests

from cinefest.constants import IP_GEOLOCATION_URLS, DEFAULT_REQUEST_TIMEOUT
from cinefest.models import Coordinate

logger = logging.getLogger(__name__)

COORDINATE_PATTERN = re.compile(r'^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$')


def parse_coordinate(text: str) -> Optional[Coordinate]:
    """Parse 'lat, lon' text; None when malformed or out of range"""
    match = COORDINATE_PATTERN.match(text or '')
    if not match:
        return None
    return Coordinate.from_payload({'lat': match.group(1), 'lon': match.group(2)})


def approximate_location_from_ip(timeout: float = DEFAULT_REQUEST_TIMEOUT) -> Optional[Coordinate]:
    """Ask public IP geolocation services, first usable answer wins"""
    for url in IP_GEOLOCATION_URLS:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.debug(f"IP geolocation via {url} failed: {e}")
            continue

        if not isinstance(payload, dict) or payload.get('success') is False:
            continue
        coordinate = Coordinate.from_payload(payload)
        if coordinate is not None:
            logger.info(f"Approximate location from IP: {coordinate.lat:.4f}, {coordinate.lon:.4f}")
            return coordinate

    logger.warning("Could not determine location from IP")
    return None


class LocationProvider:
    """Optional coordinate source; current() returns None when unavailable"""

    def __init__(self, override: Optional[Coordinate] = None, use_ip: bool = True,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.override = override
        self.use_ip = use_ip
        self.timeout = timeout

    def current(self) -> Optional[Coordinate]:
        if self.override is not None:
            return self.override
        if self.use_ip:
            return approximate_location_from_ip(self.timeout)
        return None
