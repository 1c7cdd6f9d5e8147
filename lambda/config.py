"""Configuration constants for the ward reform lookup."""

# Bundled dataset filename
WARD_DATA_FILENAME = 'ward-data.json'

# S3 key when the dataset is served from a bucket
WARD_DATA_KEY = 'data/ward-data.json'

# Nominatim (OpenStreetMap) geocoding
NOMINATIM_URL = 'https://nominatim.openstreetmap.org/search'
GEOCODER_USER_AGENT = 'vn-ward-lookup/1.0 (address reform lookup)'
GEOCODER_TIMEOUT_SECONDS = 10
GEOCODER_COUNTRY = 'Vietnam'

# 0.0001 degrees is roughly 11 meters
SIMPLIFY_TOLERANCE = 0.0001

# Rate limiting, per client IP
RATE_LIMIT_WINDOW_SECONDS = 60 * 60
RATE_LIMIT_MAX_REQUESTS = 100
RATE_LIMIT_COOLDOWN_SECONDS = 10
RATE_LIMIT_MAX_TRACKED_CLIENTS = 10000
