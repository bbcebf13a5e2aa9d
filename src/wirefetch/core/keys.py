"""Shared schema keys to avoid magic strings across wirefetch modules."""

from __future__ import annotations

# Fetch result keys
K_IDENTIFIER = "identifier"
K_FINAL_IDENTIFIER = "final_identifier"
K_METHOD = "method"
K_STATUS = "status"
K_HEADERS = "headers"
K_CONTENT_TYPE = "content_type"
K_FINGERPRINT = "fingerprint"
K_ATTEMPTS = "attempts"
K_FROM_CACHE = "from_cache"
K_TEXT = "text"
K_TEXT_SHA256 = "text_sha256"
K_TEXT_LENGTH = "text_length"
K_VIEW_SOURCE = "view_source"

# Values for K_METHOD
M_HTTP = "http"
M_CACHE = "cache"
M_FILE = "file"
M_DATA = "data"
