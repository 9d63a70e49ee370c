import re

from django.utils.text import slugify
from django.utils.crypto import get_random_string

PHONE_RE = re.compile(r"^[0-9]{10}$")


def client_ip(request):
    """Caller IP, honouring the first X-Forwarded-For hop."""
    if request is None:
        return None
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


def user_agent(request):
    if request is None:
        return ""
    return request.META.get("HTTP_USER_AGENT", "")[:512]


def unique_slug(text, max_length=200):
    """slugify(text) plus a short random suffix, e.g. 'leather-belt-x7k2m9'."""
    base = slugify(text)[: max_length - 7] or "item"
    return f"{base}-{get_random_string(6, 'abcdefghijklmnopqrstuvwxyz0123456789')}"
