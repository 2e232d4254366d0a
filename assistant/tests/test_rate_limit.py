from django.core.cache import cache
from django.test import TestCase, override_settings

from assistant.services.rate_limit import RateLimitExceeded, check_rate_limit, enforce_rate_limit


@override_settings(AI_RATE_LIMIT_MAX=3, AI_RATE_LIMIT_WINDOW_SECONDS=60)
class RateLimitTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_requests_within_limit_pass(self):
        for _ in range(3):
            self.assertTrue(check_rate_limit(user_id=1))
        self.assertFalse(check_rate_limit(user_id=1))

    def test_limit_is_per_user_and_scope(self):
        for _ in range(3):
            check_rate_limit(user_id=1)
        self.assertTrue(check_rate_limit(user_id=2))
        self.assertTrue(check_rate_limit(user_id=1, scope="other"))

    def test_enforce_raises_with_retry_after(self):
        for _ in range(3):
            enforce_rate_limit(user_id=7)
        with self.assertRaises(RateLimitExceeded) as ctx:
            enforce_rate_limit(user_id=7)
        self.assertEqual(ctx.exception.retry_after, 60)
