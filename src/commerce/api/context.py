"""Domain context for API endpoints.

Endpoints are plain functions, so FastAPI runs them on its threadpool.
Protean keeps the active domain in a context variable, which a worker
thread does not necessarily share with the event loop that received the
request; each endpoint therefore pushes the domain context itself.
"""

import functools

from commerce.domain import commerce


def in_domain_context(endpoint):
    @functools.wraps(endpoint)
    def wrapper(*args, **kwargs):
        with commerce.domain_context():
            return endpoint(*args, **kwargs)

    return wrapper
