"""HTTP constants for the request builder.

Centralizes media types, methods and limits shared across modules.
"""

# The only status accepted by the response readers
HTTP_STATUS_OK = 200

# Methods allowed to carry a request body
BODY_METHODS = frozenset({"POST"})

# Media types
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM_URLENCODED = "application/x-www-form-urlencoded"
CONTENT_TYPE_MULTIPART = "multipart/form-data"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"

# Client defaults
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_USER_AGENT = "requester/1.0"

# Chunk size for streaming file attachments
DEFAULT_CHUNK_SIZE = 8192

# Random bytes used for a multipart boundary (hex encoded, so 32 characters)
MULTIPART_BOUNDARY_BYTES = 16
