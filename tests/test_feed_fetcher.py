"""
Tests for FeedFetcher

Unit tests for feed fetching functionality.
"""

import unittest
import sys
import os

import responses
import requests

# Add project root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from top1000.errors import FetchError
from top1000.feed_fetcher import FeedFetcher


TEST_URL = "https://api.iyuu.cn/top1000.php"
FEED_BODY = "create time 2025-01-01 00:00 by http://api.iyuu.cn/ptgen/\n\n站名：ExampleSite 【ID：123】\n重复度：5\n大小：1.2GB"


class TestFeedFetcher(unittest.TestCase):
    """Test cases for FeedFetcher class."""

    def setUp(self):
        """Set up test fixtures."""
        self.fetcher = FeedFetcher(api_url=TEST_URL, timeout=5, user_agent="Test Fetcher")

    def tearDown(self):
        self.fetcher.close()

    @responses.activate
    def test_successful_fetch(self):
        """Test the body is returned as text."""
        responses.add(responses.GET, TEST_URL, body=FEED_BODY.encode('utf-8'), status=200,
                      content_type='text/plain')

        result = self.fetcher.fetch_feed()

        self.assertEqual(result, FEED_BODY)
        self.assertEqual(len(responses.calls), 1)
        self.assertEqual(responses.calls[0].request.headers['User-Agent'], "Test Fetcher")

    @responses.activate
    def test_http_error_is_not_retried(self):
        """Test a non-2xx status raises FetchError after a single request."""
        responses.add(responses.GET, TEST_URL, status=500)

        with self.assertRaises(FetchError) as ctx:
            self.fetcher.fetch_feed()

        self.assertEqual(ctx.exception.kind, FetchError.STATUS)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(len(responses.calls), 1)

    @responses.activate
    def test_not_found(self):
        """Test a 404 is reported as a status error."""
        responses.add(responses.GET, TEST_URL, status=404)

        with self.assertRaises(FetchError) as ctx:
            self.fetcher.fetch_feed()

        self.assertEqual(ctx.exception.status_code, 404)

    @responses.activate
    def test_fetch_timeout(self):
        """Test handling of timeout errors."""
        responses.add(responses.GET, TEST_URL, body=requests.exceptions.ReadTimeout("Request timed out"))

        with self.assertRaises(FetchError) as ctx:
            self.fetcher.fetch_feed()

        self.assertEqual(ctx.exception.kind, FetchError.TIMEOUT)

    @responses.activate
    def test_fetch_connection_error(self):
        """Test handling of connection errors."""
        responses.add(responses.GET, TEST_URL, body=requests.exceptions.ConnectionError("Connection failed"))

        with self.assertRaises(FetchError) as ctx:
            self.fetcher.fetch_feed()

        self.assertEqual(ctx.exception.kind, FetchError.NETWORK)
        self.assertIsNone(ctx.exception.status_code)

    def test_generated_user_agent(self):
        """Test a User-Agent is generated when none is configured."""
        fetcher = FeedFetcher(api_url=TEST_URL)
        try:
            self.assertTrue(fetcher.session.headers.get('User-Agent'))
        finally:
            fetcher.close()

    def test_disabled_verification_is_logged(self):
        """Test disabling certificate validation logs a warning."""
        with self.assertLogs('top1000.feed_fetcher', level='WARNING') as logs:
            fetcher = FeedFetcher(api_url=TEST_URL, verify_ssl=False, user_agent="x")
        fetcher.close()

        self.assertFalse(fetcher.verify_ssl)
        self.assertTrue(any("DISABLED" in line for line in logs.output))

    def test_proxy_is_applied_to_session(self):
        """Test a configured proxy is set on the session."""
        fetcher = FeedFetcher(api_url=TEST_URL, proxy_url="http://proxy.local:3128", user_agent="x")
        try:
            self.assertEqual(fetcher.session.proxies, {'http': 'http://proxy.local:3128',
                                                       'https': 'http://proxy.local:3128'})
        finally:
            fetcher.close()

    def test_no_proxy_by_default(self):
        fetcher = FeedFetcher(api_url=TEST_URL, user_agent="x")
        try:
            self.assertEqual(fetcher.session.proxies, {})
        finally:
            fetcher.close()


if __name__ == '__main__':
    unittest.main()
