"""
Fadetrack Backend: Middleware
=============================

Applied to every request, outermost first:

    Request → [Rate Limit] → [Request ID] → [Access Log] → [CORS] → Route

Rate limiting runs first so rejected requests cost nothing. The request ID
is assigned before the access log line is written, so every log line of a
request carries the same ID. Responses unwind in the reverse order.
"""
