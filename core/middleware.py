# core/middleware.py
"""
Request-scoped helpers: the audit signals read the acting user from
thread-local storage populated here.
"""

import threading

from django.utils.cache import add_never_cache_headers

_thread_locals = threading.local()


def get_current_user():
    return getattr(_thread_locals, 'user', None)


def set_current_user(user):
    _thread_locals.user = user


class AuditMiddleware:
    """Expose the authenticated user to model signal handlers for the duration of a request"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        set_current_user(user if user is not None and user.is_authenticated else None)
        try:
            return self.get_response(request)
        finally:
            set_current_user(None)


class NoCacheMiddleware:
    """
    Keep browsers from caching authenticated responses, so balances and
    liquidation totals are always fetched fresh after a mutation.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            add_never_cache_headers(response)
            response['Pragma'] = 'no-cache'
        return response
