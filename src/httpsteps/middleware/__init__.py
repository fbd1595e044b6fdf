"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request processing that sits between the worker thread and
the router (Chain of Responsibility).

    Worker ──► AccessLogMiddleware ──► Router ──► Handler
                      ▲                                │
                      └──────────── response ──────────┘

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .access_log import AccessLogMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "AccessLogMiddleware",
    "RequestLog",
]
