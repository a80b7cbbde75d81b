#!/usr/bin/env python3
"""
Constants for the catalog browser: remote endpoints, image URLs, defaults.

Single source of truth for every path the clients build, so the membership
store and the backend client never disagree on an endpoint.
"""

# Backend REST service (films, festivals, memberships, avatars)
DEFAULT_BACKEND_URL = "https://backmovies-8saw.onrender.com"

CATALOG_PATH = "/"
SEARCH_PATH = "/search"
NEAREST_FESTIVALS_PATH = "/festivalOne/{lat}/{lon}"
AVATAR_PATH = "/avatar/{user_id}"

# Membership endpoints per kind. The list payload key is not uniform on the
# server side: both "watched" and "to-watch" lists come back under 'vus'.
MEMBERSHIP_ENDPOINTS = {
    'favorites': {
        'list': "/favoris/{user_id}",
        'list_key': 'favoris',
        'add': "/favorisPost/add",
        'remove': "/favoris/remove/{user_id}/{item_id}",
    },
    'watched': {
        'list': "/vu/{user_id}",
        'list_key': 'vus',
        'add': "/vu/add",
        'remove': "/vus/remove/{user_id}/{item_id}",
    },
    'toWatch': {
        'list': "/aVoir/{user_id}",
        'list_key': 'vus',
        'add': "/aVoir/voirAdd",
        'remove': "/aVoir/remove/{user_id}/{item_id}",
    },
}

# Metadata enrichment source (TMDb)
TMDB_API_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
DEFAULT_POSTER_SIZE = "w500"

# IP geolocation fallbacks, tried in order
IP_GEOLOCATION_URLS = [
    "https://ipapi.co/json/",
    "https://ipwho.is/",
]

# Defaults (overridable in config.yaml)
DEFAULT_REQUEST_TIMEOUT = 10        # seconds, per HTTP call
DEFAULT_LOOKUP_TIMEOUT = 10.0       # seconds, per enrichment lookup
DEFAULT_MAX_CONCURRENT_LOOKUPS = 8
DEFAULT_MAP_ZOOM = 16
DEFAULT_SESSION_PATH = "output/session.json"
DEFAULT_TMDB_CACHE_PATH = "output/tmdb_cache.json"
