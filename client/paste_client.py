# client/paste_client.py
# HTTP client for submitting pastes.

import logging

import requests

logger = logging.getLogger("pastebin.client")

DEFAULT_URL: str = "http://localhost:8000"

# Statuses the service answers a successful paste with, before or after
# following the redirect to the view page.
OK_STATUSES: frozenset = frozenset({200, 201, 301, 302})


class PasteError(Exception):
    """Submitting a paste failed; the message is fit for the user."""


class PasteClient:
    def __init__(
        self,
        url: str = DEFAULT_URL,
        insecure: bool = False,
        timeout: float = 30.0,
        session: requests.Session = None,
    ) -> None:
        self.url = url
        self.insecure = insecure
        self.timeout = timeout
        self.session = session or requests.Session()

    def paste(self, blob: str) -> str:
        """POST *blob* and return the URL of the new paste."""
        if not blob:
            raise PasteError("Nothing to paste: input is empty.")

        try:
            res = self.session.post(
                self.url,
                data={"blob": blob},
                verify=not self.insecure,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            logger.debug("error pasting to %s: %s", self.url, e)
            raise PasteError(f"Could not reach {self.url}: {e}") from e

        if res.status_code not in OK_STATUSES:
            logger.debug("unexpected response from %s: %d", self.url, res.status_code)
            raise PasteError(
                f"Unexpected response from {self.url}: {res.status_code} {res.reason}"
            )

        # After the redirect the final URL is the view page itself.
        return res.url
