"""
kubereats.api.routers

Handlers for the routes every service kind exposes.

Responsibilities:
- Identity endpoints (`/`, `/info`).
- Health endpoints (`/health`, `/health/live`).
"""

# Package marker.
