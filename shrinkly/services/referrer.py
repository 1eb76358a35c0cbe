"""
Referrer Classification

Maps the HTTP Referer header onto a traffic source label.

Rules are tested in order against the hostname (leading "www." removed) with
case-sensitive substring matching; the first match wins. A hostname matching
no rule is returned as-is. Rule order changes results for hostnames that
contain several keywords, so it must not be reordered.
"""

from typing import Optional
from urllib.parse import urlparse

DIRECT = "direct"

REFERRER_RULES = (
    (("facebook", "fb.com"), "Facebook"),
    (("instagram",), "Instagram"),
    (("twitter", "x.com"), "Twitter/X"),
    (("linkedin",), "LinkedIn"),
    (("whatsapp",), "WhatsApp"),
    (("telegram",), "Telegram"),
    (("reddit",), "Reddit"),
    (("youtube",), "YouTube"),
    (("google",), "Google"),
    (("bing",), "Bing"),
)


def _hostname(referrer: str) -> Optional[str]:
    try:
        parsed = urlparse(referrer.strip())
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None
    return hostname


class ReferrerClassifier:
    """Classifies referrer URLs into source labels."""

    def __init__(self, rules=REFERRER_RULES):
        self.rules = rules

    def classify(self, referrer: Optional[str]) -> str:
        """
        Classify a referrer URL.

        Returns "direct" for an empty or unparseable referrer, the label of
        the first matching rule, or the bare hostname.
        """
        if not referrer:
            return DIRECT

        hostname = _hostname(referrer)
        if hostname is None:
            return DIRECT

        if hostname.startswith("www."):
            hostname = hostname[4:]

        for keywords, label in self.rules:
            if any(keyword in hostname for keyword in keywords):
                return label

        return hostname
