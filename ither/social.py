"""Social media post URL recognition.

Forum posts may embed an Instagram, Threads or Facebook post. ``parse_social_url``
recognizes the platform and cleans the URL for embedding.

Example:
    >>> parse_social_url("https://www.instagram.com/p/Cxyz123/?igsh=abc")
    SocialEmbed(platform=<SocialPlatform.INSTAGRAM: 'instagram'>, url='https://www.instagram.com/p/Cxyz123/', isShortUrl=False)
    >>> parse_social_url("https://example.com") is None
    True
"""

import re
from urllib.parse import urlsplit

from ither.models import SocialEmbed, SocialPlatform

# Checked in this order; the first match wins
PLATFORM_PATTERNS: dict[SocialPlatform, re.Pattern[str]] = {
    SocialPlatform.INSTAGRAM: re.compile(r"^https?://(www\.)?instagram\.com/(p|reel|tv)/[\w-]+"),
    SocialPlatform.THREADS: re.compile(r"^https?://(www\.)?threads\.(net|com)/@[\w.]+/post/\w+"),
    SocialPlatform.FACEBOOK: re.compile(r"^https?://(www\.)?(facebook\.com|fb\.watch)/.+"),
}

# Share links cannot be embedded directly
FB_SHORT_URL_PATTERN = re.compile(r"^https?://(www\.)?facebook\.com/share/(p|v|r)/")

PLATFORM_NAMES = {
    SocialPlatform.INSTAGRAM: "Instagram",
    SocialPlatform.FACEBOOK: "Facebook",
    SocialPlatform.THREADS: "Threads",
}

PLATFORM_COLORS = {
    SocialPlatform.INSTAGRAM: "#E4405F",
    SocialPlatform.FACEBOOK: "#1877F2",
    SocialPlatform.THREADS: "#000000",
}


def clean_url(url: str, platform: SocialPlatform) -> str:
    """Drop tracking query parameters from Instagram URLs."""
    if platform != SocialPlatform.INSTAGRAM:
        return url
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def is_facebook_short_url(url: str) -> bool:
    return FB_SHORT_URL_PATTERN.match(url) is not None


def parse_social_url(url: str) -> SocialEmbed | None:
    """Recognize a supported social post URL.

    Returns:
        SocialEmbed with the cleaned URL, or None for anything else
    """
    url = url.strip()
    for platform, pattern in PLATFORM_PATTERNS.items():
        if pattern.match(url):
            return SocialEmbed(
                platform=platform,
                url=clean_url(url, platform),
                isShortUrl=platform == SocialPlatform.FACEBOOK and is_facebook_short_url(url),
            )
    return None


def platform_name(platform: SocialPlatform) -> str:
    return PLATFORM_NAMES[platform]


def platform_color(platform: SocialPlatform) -> str:
    return PLATFORM_COLORS[platform]


__all__ = [
    "parse_social_url",
    "clean_url",
    "is_facebook_short_url",
    "platform_name",
    "platform_color",
]
