"""
Page Fetcher - collects page metadata and a text excerpt to ground the LLM.
Never raises: any failure just means the prompt goes out without page context.
"""
import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from smartlink.config import PAGE_TEXT_LIMIT, URL_FETCH_TIMEOUT

logger = logging.getLogger(__name__)

# Blocked hostnames (case-insensitive)
BLOCKED_HOSTNAMES = {
    'localhost',
    'localhost.localdomain',
    'ip6-localhost',
    'ip6-loopback',
}

CONTENT_SELECTORS = [
    'article', '[role="main"]', '.post-content', '.article-content',
    '.entry-content', '.content', 'main',
]

USER_AGENT = "Mozilla/5.0 (compatible; SmartLinkBot/1.0)"
MAX_REDIRECTS = 5


def is_ip_blocked(ip_str: str) -> bool:
    """Check if an IP address is internal/blocked for SSRF protection."""
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private or
            ip.is_loopback or
            ip.is_link_local or
            ip.is_reserved or
            ip.is_multicast or
            ip.is_unspecified
        )
    except ValueError:
        return False


def is_url_safe(url: str) -> tuple[bool, str]:
    """
    Validate URL to prevent SSRF attacks.
    Returns (is_safe, error_message).
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False, "Malformed URL"

    if parsed.scheme not in ('http', 'https'):
        return False, f"Scheme not allowed: {parsed.scheme}"

    hostname = parsed.hostname
    if not hostname:
        return False, "URL has no host"

    if hostname.lower() in BLOCKED_HOSTNAMES:
        return False, "localhost is not allowed"

    try:
        ip = ipaddress.ip_address(hostname)
        if is_ip_blocked(str(ip)):
            return False, "Internal IP addresses are not allowed"
    except ValueError:
        # Not an IP - resolve the hostname and check every address
        try:
            addr_info = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
            for _family, _, _, _, sockaddr in addr_info:
                if is_ip_blocked(sockaddr[0]):
                    return False, "Internal IP addresses are not allowed"
        except socket.gaierror:
            # Can't resolve - let the request fail naturally
            pass
        except UnicodeError:
            # idna rejects empty or over-long labels
            return False, "Malformed hostname"

    return True, ""


@dataclass
class PageContext:
    """What we could read from the page before asking the model."""
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    author: Optional[str] = None
    text: str = ""

    def to_prompt(self) -> str:
        lines = []
        if self.title:
            lines.append(f"Title: {self.title}")
        if self.author:
            lines.append(f"Author: {self.author}")
        if self.description:
            lines.append(f"Description: {self.description}")
        if self.image_url:
            lines.append(f"Image: {self.image_url}")
        if self.text:
            lines.append("")
            lines.append(self.text)
        return "\n".join(lines)


def _meta(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip() or None
    return None


def parse_page(url: str, html: str, text_limit: int = PAGE_TEXT_LIMIT) -> PageContext:
    """Extract OpenGraph/meta fields and the main text from HTML."""
    soup = BeautifulSoup(html, 'html.parser')

    title = _meta(soup, property='og:title')
    if not title:
        title_tag = soup.find('title')
        title = title_tag.get_text(strip=True) if title_tag else None

    description = _meta(soup, property='og:description') or _meta(soup, name='description')
    image_url = _meta(soup, property='og:image')
    author = _meta(soup, name='author') or _meta(soup, property='article:author')

    content_text = ""
    for selector in CONTENT_SELECTORS:
        container = soup.select_one(selector)
        if container:
            for tag in container.select('script, style, nav, header, footer, aside, .ad, .advertisement'):
                tag.decompose()
            content_text = container.get_text(separator='\n', strip=True)
            if len(content_text) > 100:
                break

    # Fallback: first paragraphs
    if len(content_text) < 100:
        paragraphs = soup.find_all('p')
        content_text = '\n'.join(p.get_text(strip=True) for p in paragraphs[:20])

    if len(content_text) > text_limit:
        content_text = content_text[:text_limit] + "..."

    return PageContext(
        url=url,
        title=title,
        description=description,
        image_url=image_url,
        author=author,
        text=content_text,
    )


class PageFetcher:
    """Downloads a page and turns it into PageContext."""

    def __init__(self, timeout: int = URL_FETCH_TIMEOUT, text_limit: int = PAGE_TEXT_LIMIT):
        self.timeout = timeout
        self.text_limit = text_limit

    async def fetch(self, url: str) -> Optional[PageContext]:
        """Return PageContext, or None if the page can't or mustn't be fetched."""
        try:
            return await self._fetch(url)
        except httpx.TimeoutException:
            logger.warning(f"Page fetch timed out: {url}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Page fetch failed for {url}: {e}")
            return None
        except Exception as e:
            logger.error(f"Page fetch error for {url}: {e}")
            return None

    async def _fetch(self, url: str) -> Optional[PageContext]:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT}
        ) as client:
            target = url
            # every redirect hop must pass the SSRF guard
            for _ in range(MAX_REDIRECTS + 1):
                is_safe, error_msg = await asyncio.to_thread(is_url_safe, target)
                if not is_safe:
                    logger.warning(f"Blocked page fetch for {target}: {error_msg}")
                    return None

                response = await client.get(target, follow_redirects=False)
                if not response.is_redirect:
                    break
                target = str(response.next_request.url)
            else:
                logger.warning(f"Too many redirects for {url}")
                return None

            response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if "html" not in content_type:
            logger.debug(f"Skipping non-HTML page {url} ({content_type})")
            return None

        return parse_page(url, response.text, self.text_limit)
