"""Nominatim geocoding client. Turns a street description into a coordinate."""

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request

from config import (
    GEOCODER_COUNTRY,
    GEOCODER_TIMEOUT_SECONDS,
    GEOCODER_USER_AGENT,
    NOMINATIM_URL,
)
from models import Coordinate

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """A single geocoding request failed (transport, HTTP or payload)."""


class NominatimGeocoder:
    def __init__(self, base_url=NOMINATIM_URL, user_agent=GEOCODER_USER_AGENT,
                 timeout=GEOCODER_TIMEOUT_SECONDS):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout

    def _get(self, params):
        """Run one search request and return the decoded result list.

        No retries here: callers decide whether to try another query.
        """
        query = dict(params, format='json', limit=1)
        url = f'{self.base_url}?{urllib.parse.urlencode(query)}'
        req = urllib.request.Request(url)
        req.add_header('User-Agent', self.user_agent)
        req.add_header('Accept-Language', 'vi')

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode('utf-8'))
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
            raise GeocodingError(str(e)) from e

        if not isinstance(data, list):
            raise GeocodingError(f'unexpected response payload: {type(data).__name__}')
        return data

    def _first_coordinate(self, params, phase):
        try:
            results = self._get(params)
        except GeocodingError as e:
            logger.warning(f'Geocoding {phase} query failed: {e}')
            return None

        if not results:
            logger.info(f'Geocoding {phase} query returned no results')
            return None

        try:
            return Coordinate(lat=float(results[0]['lat']), lon=float(results[0]['lon']))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f'Geocoding {phase} query returned an unusable result: {e}')
            return None

    def geocode(self, street_text, province, district, ward):
        """Find the coordinate of a street address in a known old ward.

        Tries a structured query first, then a single free-text query.

        Returns:
            Coordinate, or None if neither query produced a result.
        """
        structured = {
            'street': street_text,
            'city': province,
            'country': GEOCODER_COUNTRY,
        }
        coordinate = self._first_coordinate(structured, 'structured')
        if coordinate is not None:
            return coordinate

        free_text = f'{street_text}, {ward}, {district}, {province}, {GEOCODER_COUNTRY}'
        coordinate = self._first_coordinate({'q': free_text}, 'free-text')
        if coordinate is None:
            logger.info(f'Could not geocode "{street_text}" in {ward}, {district}, {province}')
        return coordinate
