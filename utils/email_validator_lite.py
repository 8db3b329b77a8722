"""
utils/email_validator_lite.py
─────────────────────────────
Lightweight address check run before a confirmation link is mailed out.

Checks performed (in order, fast-to-slow):
  1. Syntax check  – regex (instant)
  2. MX check      – DNS lookup (dnspython, socket fallback), cached per domain,
                     only when GMS_EMAIL_MX_CHECK is on
"""

import re
import logging
import socket
from typing import Dict

import dns.exception
import dns.resolver

logger = logging.getLogger("gms_service")

_EMAIL_REGEX = re.compile(
    r'^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$'
)

# Shared across all calls in one process
_mx_cache: Dict[str, bool] = {}


def normalise_email(email: str) -> str:
    return email.strip().lower()


def syntax_ok(email: str) -> bool:
    return bool(_EMAIL_REGEX.match(normalise_email(email)))


def has_mx(domain: str) -> bool:
    """Returns True if `domain` has MX records, or at least resolves at port 25. Result is cached."""
    if domain in _mx_cache:
        return _mx_cache[domain]

    try:
        dns.resolver.resolve(domain, "MX")
        _mx_cache[domain] = True
        return True
    except dns.exception.DNSException:
        pass  # fall through to socket fallback

    try:
        socket.getaddrinfo(domain, 25)
        _mx_cache[domain] = True
    except OSError:
        logger.warning(f"No mail server for domain: {domain}")
        _mx_cache[domain] = False
    return _mx_cache[domain]


def validate_email(email: str, skip_mx: bool = True) -> bool:
    """Syntax check, plus a DNS check of the domain when skip_mx is False."""
    email = normalise_email(email)
    if not syntax_ok(email):
        logger.warning(f"Bad email format: {email}")
        return False
    if skip_mx:
        return True
    return has_mx(email.split("@")[-1])
