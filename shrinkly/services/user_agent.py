"""
User-Agent Classification

Turns a raw User-Agent header into the device class, browser family and OS
family stored on each analytics event.

Classification never fails: empty or unrecognisable input degrades to
"unknown" for every field.
"""

import logging
from typing import NamedTuple, Optional

from user_agents import parse as parse_ua

from shrinkly.db.models import DeviceType

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# ua-parser reports undetectable families as "Other"
_UNDETECTED_FAMILIES = {"", "Other"}


class UserAgentInfo(NamedTuple):
    device: str
    browser: str
    os: str


UNKNOWN_USER_AGENT = UserAgentInfo(DeviceType.unknown.value, UNKNOWN, UNKNOWN)


def _family(value: Optional[str]) -> str:
    if not value or value in _UNDETECTED_FAMILIES:
        return UNKNOWN
    return value


class UserAgentClassifier:
    """Classifies User-Agent strings with the user-agents library."""

    def classify(self, user_agent: Optional[str]) -> UserAgentInfo:
        """
        Classify a User-Agent string.

        Device is mobile or tablet when the parser says so, desktop when an
        operating system was recognised without either signal, otherwise
        unknown.
        """
        if not user_agent:
            return UNKNOWN_USER_AGENT

        try:
            parsed = parse_ua(user_agent)
        except Exception:
            logger.debug("Unparseable user agent: %r", user_agent, exc_info=True)
            return UNKNOWN_USER_AGENT

        browser = _family(parsed.browser.family)
        os_name = _family(parsed.os.family)

        if parsed.is_mobile:
            device = DeviceType.mobile.value
        elif parsed.is_tablet:
            device = DeviceType.tablet.value
        elif os_name != UNKNOWN:
            device = DeviceType.desktop.value
        else:
            device = DeviceType.unknown.value

        return UserAgentInfo(device=device, browser=browser, os=os_name)
