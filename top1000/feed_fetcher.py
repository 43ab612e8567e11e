#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
feed_fetcher.py - Module for fetching the raw Top1000 feed using requests.
"""

import logging
import time
from typing import Optional

import requests
from user_agent import generate_user_agent

from top1000.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.iyuu.cn/top1000.php"
DEFAULT_TIMEOUT = 10


class FeedFetcher:
    """
    Retrieves the raw feed text from the upstream aggregator.

    One call issues exactly one GET request. Failures are raised as
    FetchError and never retried here; the next scheduled run is the retry.
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = DEFAULT_TIMEOUT,
                 verify_ssl: bool = True, proxy_url: Optional[str] = None,
                 user_agent: Optional[str] = None):
        """
        Initialize the feed fetcher.

        Args:
            api_url: Endpoint serving the plaintext feed
            timeout: Request timeout in seconds
            verify_ssl: Whether to validate the endpoint's TLS certificate
            proxy_url: Optional outbound proxy, e.g. "http://proxy.local:3128"
            user_agent: Fixed User-Agent; a browser-like one is generated if omitted
        """
        self.api_url = api_url
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.proxy_url = proxy_url

        self.session = self._create_session(user_agent or generate_user_agent())

        if not self.verify_ssl:
            logger.warning(f"TLS certificate validation is DISABLED for {self.api_url}")

        logger.debug(f"FeedFetcher initialized for {self.api_url} (timeout {self.timeout}s)")

    def _create_session(self, user_agent: str) -> requests.Session:
        """Build the HTTP session used for every fetch."""
        session = requests.Session()
        session.headers.update({
            'User-Agent': user_agent,
            'Accept': 'text/plain, */*;q=0.8',
        })

        if self.proxy_url:
            session.proxies.update({'http': self.proxy_url, 'https': self.proxy_url})
            logger.info("Fetching through the configured proxy")

        return session

    def fetch_feed(self) -> str:
        """
        Fetch the raw feed.

        Returns:
            Response body as text

        Raises:
            FetchError: On timeout, connection failure or a non-2xx status
        """
        logger.info(f"Fetching feed from {self.api_url}")
        start_time = time.time()

        try:
            response = self.session.get(self.api_url, timeout=self.timeout, verify=self.verify_ssl)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise FetchError(FetchError.TIMEOUT, f"Timed out after {self.timeout}s fetching {self.api_url}: {e}") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(FetchError.STATUS, f"Feed endpoint returned HTTP {status}", status_code=status) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(FetchError.NETWORK, f"Failed to fetch {self.api_url}: {e}") from e

        # The feed is UTF-8 but is served without a charset
        if 'charset' not in response.headers.get('Content-Type', '').lower():
            response.encoding = 'utf-8'
        body = response.text

        duration = time.time() - start_time
        logger.info(f"Fetched feed: {len(response.content)} bytes in {duration:.2f}s")
        return body

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()
