"""
HTTP client for the remote document store.

The store is a single web-app URL (e.g. a Google Apps Script deployment):
GET returns the whole dataset as JSON, POST overwrites it.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

from ..domain.exceptions import RemoteStoreError

logger = logging.getLogger(__name__)


class RemoteStoreClient:
    """
    Fetch-all / overwrite-all client for the remote document endpoint.

    Writes are sent the way a browser "no-cors" request sends them: a plain
    text body and no interest in the response. Only transport errors are
    noticed on the write side.
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            endpoint_url: Web-app URL serving the document
            timeout: Seconds to wait for each request
            session: Optional requests session (tests pass a stub)
        """
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_document(self) -> Dict[str, Any]:
        """
        Download the complete dataset.

        Returns:
            Decoded JSON document

        Raises:
            RemoteStoreError: If the request fails or the body is not JSON
        """
        try:
            response = self.session.get(
                self.endpoint_url,
                timeout=self.timeout,
                allow_redirects=True
            )
            response.raise_for_status()

        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"Failed to fetch data from {self.endpoint_url}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteStoreError(f"Remote store returned invalid JSON: {e}") from e

        logger.debug("Fetched remote document from %s", self.endpoint_url)
        return data

    def push_document(self, document: Dict[str, Any]) -> None:
        """
        Overwrite the remote dataset with ``document``.

        The response status and body are ignored.

        Raises:
            RemoteStoreError: If the request could not be sent
        """
        body = json.dumps(document, ensure_ascii=False)

        try:
            self.session.post(
                self.endpoint_url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout
            )

        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"Failed to push data to {self.endpoint_url}: {e}") from e

        logger.debug("Pushed %d bytes to %s", len(body), self.endpoint_url)
