"""
Tests for the cron shared-secret check.
"""
from core.security import verify_bearer_secret


class TestVerifyBearerSecret:

    def test_matching_secret(self):
        assert verify_bearer_secret("Bearer s3cret", "s3cret") is True

    def test_wrong_secret(self):
        assert verify_bearer_secret("Bearer s3cret!", "s3cret") is False

    def test_missing_header(self):
        assert verify_bearer_secret(None, "s3cret") is False
        assert verify_bearer_secret("", "s3cret") is False

    def test_other_scheme(self):
        assert verify_bearer_secret("Basic s3cret", "s3cret") is False
        assert verify_bearer_secret("s3cret", "s3cret") is False

    def test_unconfigured_secret_rejects_everything(self):
        assert verify_bearer_secret("Bearer ", None) is False
        assert verify_bearer_secret("Bearer ", "") is False
        assert verify_bearer_secret("Bearer None", None) is False
