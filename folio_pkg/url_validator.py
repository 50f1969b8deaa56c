"""
Service origin validation for the XRPC client.

A wrong service URL and wrong credentials both surface as a failed login, so
the origin is checked up front to rule out the first cause early.
"""

import re
from urllib.parse import urlparse
from typing import Set, Tuple


class ServiceURLValidator:
    """
    Validates the origin an account's records are served from.
    """

    # Allowed URL schemes
    ALLOWED_SCHEMES: Set[str] = {'http', 'https'}

    # Hosts that only make sense when pointing at a local development PDS
    LOCAL_HOSTNAMES: Set[str] = {
        'localhost',
        'localhost.localdomain',
        '127.0.0.1',
        '::1',
    }

    def __init__(self, allow_local: bool = False):
        """
        Initialize the validator.

        Args:
            allow_local: Accept loopback hosts (a PDS running on this machine)
        """
        self.allow_local = allow_local

    def validate(self, url: str) -> Tuple[bool, str]:
        """
        Validate a service origin such as ``https://bsky.social``.

        Args:
            url: The origin to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not url or not isinstance(url, str):
            return False, "Service URL is empty"

        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return False, f"Invalid service URL format: {url}"

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            return False, f"Unsupported URL scheme: {parsed.scheme}"

        # User info in the netloc is never a valid PDS origin
        if '@' in parsed.netloc:
            return False, "Service URL must not contain credentials"

        hostname = parsed.hostname
        if not hostname:
            return False, "Invalid hostname in service URL"

        if hostname.lower() in self.LOCAL_HOSTNAMES and not self.allow_local:
            return False, f"Local service host not allowed: {hostname}"

        if parsed.path not in ('', '/') or parsed.query or parsed.fragment:
            return False, f"Service URL must be an origin without a path: {url}"

        if re.search(r'%2e%2e|\.\./', url.lower()):
            return False, "Service URL contains suspicious patterns"

        return True, "Service URL is valid"

    @staticmethod
    def origin(url: str) -> str:
        """Return ``url`` without a trailing slash."""
        return url.rstrip('/')
