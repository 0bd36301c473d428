"""Tests for CSRF token generation and validation."""

import re
import time

from accountsync.security.csrf import (
    create_timestamped_token,
    generate_csrf_token,
    validate_timestamped_token,
)


class TestCSRFTokens:
    def test_token_format(self):
        token = create_timestamped_token()
        assert re.fullmatch(r"\d{13}\.[0-9a-f]{64}", token)

    def test_tokens_are_unique(self):
        assert generate_csrf_token() != generate_csrf_token()

    def test_fresh_token_valid(self):
        assert validate_timestamped_token(create_timestamped_token(), max_age=3600)

    def test_expired_token_invalid(self):
        two_hours_ago = int(time.time() * 1000) - 2 * 3600 * 1000
        token = create_timestamped_token(now_ms=two_hours_ago)
        assert not validate_timestamped_token(token, max_age=3600)

    def test_malformed_tokens_invalid(self):
        now = int(time.time() * 1000)
        for token in ["", "abc", f"{now}.", f".{'a' * 64}", f"{now}.{'a' * 10}", f"x.{'a' * 64}"]:
            assert not validate_timestamped_token(token, max_age=3600), token
