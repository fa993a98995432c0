"""HTTP middleware: request ID.

Applied in main app; import and use from framestore.main.
"""

from framestore.middleware.request_id import RequestIDMiddleware

__all__ = [
    "RequestIDMiddleware",
]
