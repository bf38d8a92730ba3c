"""JIRA ticket lookups over the REST API."""

from __future__ import annotations

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional

LOGGER = logging.getLogger(__name__)

Transport = Callable[[str, Dict[str, str]], str]

_TICKET_RE = re.compile(r"([A-Z]+-\d+)")
_PLAIN_KEY_RE = re.compile(r"^[A-Za-z]+-\d+$")
_BROWSE_URL_RE = re.compile(r"/browse/([A-Za-z]+-\d+)", re.IGNORECASE)


class JiraTransportError(RuntimeError):
    """Raised by transports when the JIRA API cannot be reached."""


@dataclass(slots=True, frozen=True)
class TicketDetails:
    key: str
    title: Optional[str] = None

    @property
    def label(self) -> str:
        return f"[{self.key}]"


def extract_jira_ticket(text: str) -> str | None:
    """Return the first ``ABC-123`` style key found in ``text``."""

    match = _TICKET_RE.search(text or "")
    if not match:
        LOGGER.info("No JIRA ticket found in %r", text)
        return None
    return match.group(1)


def parse_ticket_reference(value: str) -> str | None:
    """Normalise a ticket key or ``/browse/KEY`` URL to an upper-case key."""

    candidate = (value or "").strip()
    if not candidate:
        return None
    if _PLAIN_KEY_RE.match(candidate):
        return candidate.upper()
    match = _BROWSE_URL_RE.search(candidate)
    if match:
        return match.group(1).upper()
    return None


class JiraClient:
    """Fetch ticket summaries with basic authentication."""

    def __init__(
        self,
        *,
        base_url: str,
        email: str,
        api_token: str,
        transport: Optional[Transport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._email = email
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport or self._http_transport

    def issue_url(self, key: str) -> str:
        return f"{self._base_url}/rest/api/3/issue/{key}?fields=summary"

    def _headers(self) -> Dict[str, str]:
        token = base64.b64encode(f"{self._email}:{self._api_token}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {token}", "Accept": "application/json"}

    def _http_transport(self, url: str, headers: Dict[str, str]) -> str:
        import urllib.error
        import urllib.request

        request = urllib.request.Request(url, headers=headers, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            raise JiraTransportError(f"HTTP {error.code}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise JiraTransportError(f"Failed to reach JIRA: {error.reason}") from error
        return raw.decode("utf-8")

    def get_ticket_details(self, key: str) -> TicketDetails | None:
        """Return the ticket summary, or ``None`` on any failure."""

        try:
            raw = self._transport(self.issue_url(key), self._headers())
            summary = json.loads(raw)["fields"]["summary"]
        except (JiraTransportError, OSError, ValueError, KeyError, TypeError) as error:
            LOGGER.warning("Error fetching JIRA ticket %s: %s", key, error)
            return None
        return TicketDetails(key=key, title=str(summary))


__all__ = [
    "JiraClient",
    "JiraTransportError",
    "TicketDetails",
    "Transport",
    "extract_jira_ticket",
    "parse_ticket_reference",
]
