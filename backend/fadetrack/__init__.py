"""
Fadetrack Backend: Application Package
======================================

A review and directory service connecting clients with beauty and
grooming professionals.

    ┌─────────────────────────────────────┐
    │        Routes (FastAPI routers)     │  ← HTTP shape only
    ├─────────────────────────────────────┤
    │        Services (business rules)    │  ← aggregates, quota, AI, email
    ├─────────────────────────────────────┤
    │   Models (SQLAlchemy) · Schemas     │  ← tables · request/response bodies
    ├─────────────────────────────────────┤
    │      Database (async sessions)      │  ← one transaction per request
    └─────────────────────────────────────┘

`fadetrack.client` is separate from the server stack: it is the
browser-side role resolver, usable from any Python caller of the API.
"""

__version__ = "1.0.0"
