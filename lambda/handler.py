"""Lambda handler for the ward reform lookup API.

Serves API Gateway proxy events:
    POST /lookup          resolve an old address to its new ward
    GET  /selection-data  province -> district -> ward tree for pickers

The dataset is loaded once per container. If that fails, every request is
answered with 500 until the container is replaced.
"""

import base64
import json
import logging
import os

from config import WARD_DATA_KEY
from geocoder import NominatimGeocoder
from models import (
    Coordinate,
    GeocodingFailed,
    Merged,
    NotFound,
    SplitMatched,
    SplitNoMatch,
    SplitRequiresInput,
)
from rate_limiter import RateLimiter
from resolver import ResolutionEngine
from ward_store import DataUnavailableError, WardRecordStore

logger = logging.getLogger()
logger.setLevel(logging.INFO)

RESULT_STATUS = {
    Merged.type: (200, None),
    SplitMatched.type: (200, None),
    SplitRequiresInput.type: (400, 'ERROR_STREET_INFO_NEEDED'),
    NotFound.type: (404, 'ERROR_NOT_FOUND'),
    SplitNoMatch.type: (404, 'ERROR_SPLIT_NO_MATCH'),
    GeocodingFailed.type: (404, 'ERROR_GEOCODING_FAILED'),
}

_engine = None
_load_error = None
_rate_limiter = None


def build_engine():
    """Build the engine from environment configuration."""
    bucket = os.environ.get('WARD_DATA_BUCKET')
    if bucket:
        store = WardRecordStore.from_s3(bucket, os.environ.get('WARD_DATA_KEY', WARD_DATA_KEY))
    else:
        store = WardRecordStore.from_file(os.environ.get('WARD_DATA_PATH'))

    geocoder_kwargs = {}
    if os.environ.get('NOMINATIM_URL'):
        geocoder_kwargs['base_url'] = os.environ['NOMINATIM_URL']
    if os.environ.get('GEOCODER_USER_AGENT'):
        geocoder_kwargs['user_agent'] = os.environ['GEOCODER_USER_AGENT']
    if os.environ.get('GEOCODER_TIMEOUT_SECONDS'):
        geocoder_kwargs['timeout'] = float(os.environ['GEOCODER_TIMEOUT_SECONDS'])

    return ResolutionEngine(store=store, geocoder=NominatimGeocoder(**geocoder_kwargs))


def get_engine():
    """Return the process-wide engine, loading the dataset on first use.

    Raises DataUnavailableError on every call once loading has failed.
    """
    global _engine, _load_error
    if _engine is None:
        if _load_error is not None:
            raise _load_error
        try:
            _engine = build_engine()
        except DataUnavailableError as e:
            logger.exception('Ward dataset failed to load')
            _load_error = e
            raise
    return _engine


def get_rate_limiter():
    global _rate_limiter
    if _rate_limiter is None:
        max_requests = os.environ.get('RATE_LIMIT_MAX_REQUESTS')
        _rate_limiter = RateLimiter(max_requests=int(max_requests)) if max_requests else RateLimiter()
    return _rate_limiter


def respond(status, body):
    return {
        'statusCode': status,
        'headers': {'Content-Type': 'application/json; charset=utf-8'},
        'body': json.dumps(body, ensure_ascii=False),
    }


def parse_coordinate(raw):
    """Parse {lat, lon} from the request body. Returns None when absent."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError('userCoordinates must be an object')

    values = []
    for name in ('lat', 'lon'):
        value = raw.get(name)
        if value is None or isinstance(value, bool):
            raise ValueError(f'userCoordinates.{name} is missing')
        try:
            values.append(float(value))
        except OverflowError as e:
            raise ValueError(f'userCoordinates.{name} is out of range') from e

    lat, lon = values
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ValueError(f'coordinate out of range: {lat}, {lon}')
    return Coordinate(lat=lat, lon=lon)


def _method(event):
    return event.get('httpMethod') or event.get('requestContext', {}).get('http', {}).get('method', '')


def _path(event):
    return event.get('rawPath') or event.get('path') or ''


def _client_ip(event):
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}
    forwarded = headers.get('x-forwarded-for')
    if forwarded:
        return forwarded.split(',')[0].strip()
    context = event.get('requestContext', {})
    return (
        context.get('http', {}).get('sourceIp')
        or context.get('identity', {}).get('sourceIp')
        or 'unknown'
    )


def _json_body(event):
    body = event.get('body') or '{}'
    if event.get('isBase64Encoded'):
        body = base64.b64decode(body).decode('utf-8')
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError('request body must be a JSON object')
    return data


def handle_selection_data(event):
    if _method(event) != 'GET':
        return respond(405, {'messageKey': 'ERROR_METHOD_NOT_ALLOWED'})
    try:
        engine = get_engine()
    except DataUnavailableError:
        return respond(500, {'messageKey': 'ERROR_UNKNOWN', 'details': 'Server data is not available.'})
    return respond(200, engine.store.selection_tree())


def handle_lookup(event):
    limit = get_rate_limiter().check(_client_ip(event))
    if not limit['allowed']:
        return respond(429, {'messageKey': limit['messageKey'], 'meta': limit['meta']})

    if _method(event) != 'POST':
        return respond(405, {'messageKey': 'ERROR_METHOD_NOT_ALLOWED'})

    try:
        body = _json_body(event)
        coordinate = parse_coordinate(body.get('userCoordinates'))
    except (ValueError, TypeError) as e:
        logger.info(f'Rejected lookup request: {e}')
        return respond(400, {'messageKey': 'ERROR_INVALID_INPUT'})

    old_unit = (body.get('oldProvince'), body.get('oldDistrict'), body.get('oldWard'))
    if not all(isinstance(part, str) and part for part in old_unit):
        return respond(400, {'messageKey': 'ERROR_MISSING_ADDRESS'})

    street_info = body.get('streetInfo')
    if street_info is not None and not isinstance(street_info, str):
        return respond(400, {'messageKey': 'ERROR_INVALID_INPUT'})

    try:
        engine = get_engine()
    except DataUnavailableError:
        return respond(500, {'messageKey': 'ERROR_UNKNOWN', 'details': 'Server data is not available.'})

    try:
        result = engine.resolve(old_unit, coordinate=coordinate, street_info=street_info)
    except Exception:
        logger.exception(f'Lookup failed for {old_unit}')
        return respond(500, {'messageKey': 'ERROR_SERVER_GEO'})

    status, message_key = RESULT_STATUS[result.type]
    payload = result.to_dict()
    if message_key:
        payload['messageKey'] = message_key
    logger.info(f'Lookup {old_unit} -> {result.type}')
    return respond(status, payload)


def handler(event, context):
    path = _path(event).rstrip('/')
    if path.endswith('/lookup'):
        return handle_lookup(event)
    if path.endswith('/selection-data'):
        return handle_selection_data(event)
    return respond(404, {'messageKey': 'ERROR_NOT_FOUND'})
