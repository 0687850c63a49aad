"""
kubereats.api

API package shared by every service kind.

Responsibilities:
- FastAPI app factory built from the route table.
- Request dispatch/drain middleware and the uvicorn server wrapper.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: health endpoints answer from the runtime, business routes plug into the table.
