# tests/test_page_fetcher.py
"""Tests for page context fetching."""
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from smartlink.services.page_fetcher import (
    MAX_REDIRECTS,
    PageContext,
    PageFetcher,
    is_url_safe,
    parse_page,
)

ARTICLE_HTML = """
<html>
<head>
    <title>Fallback Title</title>
    <meta property="og:title" content="Test Article Title">
    <meta property="og:description" content="Article description">
    <meta property="og:image" content="https://example.com/og.png">
    <meta name="author" content="Jane Doe">
</head>
<body>
    <nav>Menu</nav>
    <article>
        <p>This is the article content with meaningful text that should be extracted by the fetcher.</p>
        <p>Second paragraph to push the content past the minimum length threshold.</p>
        <script>var tracking = 1;</script>
    </article>
</body>
</html>
"""


def _html_response(html: str, content_type: str = "text/html; charset=utf-8"):
    response = MagicMock()
    response.status_code = 200
    response.is_redirect = False
    response.text = html
    response.headers = {"content-type": content_type}
    response.raise_for_status = MagicMock()
    return response


class TestIsUrlSafe:
    """Tests for SSRF guard."""

    @pytest.mark.parametrize("url", [
        "http://localhost/admin",
        "http://127.0.0.1:8080/",
        "http://10.0.0.5/",
        "http://192.168.1.1/",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/",
    ])
    def test_blocks_internal(self, url):
        """Test internal hosts are rejected."""
        is_safe, error = is_url_safe(url)
        assert is_safe is False
        assert error

    def test_blocks_scheme(self):
        """Test non-http schemes are rejected."""
        assert is_url_safe("file:///etc/passwd")[0] is False

    def test_allows_public_ip(self):
        """Test public address passes."""
        assert is_url_safe("https://93.184.216.34/")[0] is True

    def test_blocks_hostname_resolving_to_private(self):
        """Test DNS answers are checked too."""
        addr_info = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.1.2.3", 0))]
        with patch("smartlink.services.page_fetcher.socket.getaddrinfo", return_value=addr_info):
            assert is_url_safe("https://internal.example.com/")[0] is False

    def test_overlong_label_rejected(self):
        """Test a hostname label over 63 chars is refused, not raised."""
        assert is_url_safe("https://" + "a" * 70 + ".com/") == (False, "Malformed hostname")

    def test_unresolvable_host_allowed(self):
        """Test resolution failure is left to the request itself."""
        with patch("smartlink.services.page_fetcher.socket.getaddrinfo", side_effect=socket.gaierror):
            assert is_url_safe("https://no-such-host.test/")[0] is True


class TestParsePage:
    """Tests for parse_page."""

    def test_meta_fields(self):
        """Test OpenGraph and author meta."""
        page = parse_page("https://example.com/a", ARTICLE_HTML)
        assert page.title == "Test Article Title"
        assert page.description == "Article description"
        assert page.image_url == "https://example.com/og.png"
        assert page.author == "Jane Doe"

    def test_article_text(self):
        """Test main text is taken from <article> without scripts."""
        page = parse_page("https://example.com/a", ARTICLE_HTML)
        assert "meaningful text" in page.text
        assert "tracking" not in page.text
        assert "Menu" not in page.text

    def test_title_fallback(self):
        """Test <title> is used without og:title."""
        page = parse_page("https://example.com/a", "<html><head><title>Plain</title></head><body></body></html>")
        assert page.title == "Plain"

    def test_text_limit(self):
        """Test text is truncated to the budget."""
        html = "<html><body><article><p>" + "word " * 2000 + "</p></article></body></html>"
        page = parse_page("https://example.com/a", html, text_limit=100)
        assert len(page.text) == 103
        assert page.text.endswith("...")

    def test_to_prompt(self):
        """Test prompt rendering skips empty fields."""
        page = PageContext(url="https://example.com", title="T", text="Body")
        assert page.to_prompt() == "Title: T\n\nBody"


class TestPageFetcher:
    """Tests for PageFetcher.fetch."""

    @pytest.fixture
    def fetcher(self):
        return PageFetcher(timeout=5)

    @pytest.fixture(autouse=True)
    def allow_all_urls(self):
        with patch("smartlink.services.page_fetcher.is_url_safe", return_value=(True, "")):
            yield

    @pytest.mark.asyncio
    async def test_fetch_success(self, fetcher):
        """Test HTML page is parsed."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_html_response(ARTICLE_HTML)
            )
            page = await fetcher.fetch("https://example.com/article")

        assert page.title == "Test Article Title"
        assert page.url == "https://example.com/article"

    @pytest.mark.asyncio
    async def test_fetch_timeout(self, fetcher):
        """Test timeout gives None."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.TimeoutException("Timeout")
            )
            assert await fetcher.fetch("https://slow-site.com") is None

    @pytest.mark.asyncio
    async def test_fetch_http_error(self, fetcher):
        """Test HTTP error status gives None."""
        request = httpx.Request("GET", "https://example.com/missing")
        response = _html_response("")
        response.raise_for_status = MagicMock(side_effect=httpx.HTTPStatusError(
            "404", request=request, response=httpx.Response(404, request=request)
        ))
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(return_value=response)
            assert await fetcher.fetch("https://example.com/missing") is None

    @pytest.mark.asyncio
    async def test_non_html_skipped(self, fetcher):
        """Test PDFs and other binaries give None."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_html_response("%PDF", content_type="application/pdf")
            )
            assert await fetcher.fetch("https://example.com/file.pdf") is None

    @pytest.mark.asyncio
    async def test_blocked_url(self, fetcher):
        """Test unsafe URL is never requested."""
        with patch("smartlink.services.page_fetcher.is_url_safe", return_value=(False, "localhost is not allowed")):
            with patch('httpx.AsyncClient') as mock_client:
                get = mock_client.return_value.__aenter__.return_value.get = AsyncMock()
                assert await fetcher.fetch("http://localhost/") is None
                get.assert_not_called()

    @pytest.mark.asyncio
    async def test_parse_failure_gives_none(self, fetcher):
        """Test an unexpected error while parsing is swallowed."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_html_response(ARTICLE_HTML)
            )
            with patch("smartlink.services.page_fetcher.parse_page", side_effect=RuntimeError("bad markup")):
                assert await fetcher.fetch("https://example.com/article") is None

    @pytest.mark.asyncio
    async def test_follows_safe_redirect(self, fetcher):
        """Test a redirect to a public page is followed by hand."""
        redirect = _html_response("")
        redirect.is_redirect = True
        redirect.next_request.url = httpx.URL("https://example.com/final")
        with patch('httpx.AsyncClient') as mock_client:
            get = mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=[redirect, _html_response(ARTICLE_HTML)]
            )
            page = await fetcher.fetch("https://example.com/start")

        assert page.title == "Test Article Title"
        assert get.call_args_list[1].args == ("https://example.com/final",)
        assert get.call_args.kwargs["follow_redirects"] is False


class TestPageFetcherGuard:
    """PageFetcher.fetch with the real SSRF guard."""

    @pytest.mark.asyncio
    async def test_overlong_hostname(self):
        """Test a malformed hostname yields no context instead of raising."""
        with patch('httpx.AsyncClient') as mock_client:
            get = mock_client.return_value.__aenter__.return_value.get = AsyncMock()
            assert await PageFetcher().fetch("https://" + "a" * 70 + ".com/") is None
        get.assert_not_called()

    @pytest.mark.asyncio
    async def test_redirect_to_internal_blocked(self):
        """Test a public URL redirecting to metadata IP is not followed."""
        redirect = _html_response("")
        redirect.is_redirect = True
        redirect.next_request.url = httpx.URL("http://169.254.169.254/latest/meta-data")
        with patch('httpx.AsyncClient') as mock_client:
            get = mock_client.return_value.__aenter__.return_value.get = AsyncMock(return_value=redirect)
            assert await PageFetcher().fetch("https://93.184.216.34/") is None
        get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redirect_loop(self):
        """Test redirect chains are capped."""
        redirect = _html_response("")
        redirect.is_redirect = True
        redirect.next_request.url = httpx.URL("https://93.184.216.34/again")
        with patch('httpx.AsyncClient') as mock_client:
            get = mock_client.return_value.__aenter__.return_value.get = AsyncMock(return_value=redirect)
            assert await PageFetcher().fetch("https://93.184.216.34/") is None
        assert get.await_count == MAX_REDIRECTS + 1
