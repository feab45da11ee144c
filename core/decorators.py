# core/decorators.py
from functools import wraps

from django.http import JsonResponse


def permission_required_json(module_name):
    """
    Reject requests from users without access to ``module_name`` with a
    403 JSON result. Use below @login_required.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if not hasattr(request.user, 'has_permission') or not request.user.has_permission(module_name):
                return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator
