"""
Cloud Storage object listing.

Uses the JSON API directly so the listing can page with ``pageToken`` and
fail as a whole: if any page returns a non-2xx status nothing is returned.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple
from urllib.parse import quote

import requests

from .credentials import CredentialProvider
from .transport import send_json

logger = logging.getLogger(__name__)

GCS_SCHEME = "gs://"
STORAGE_API_URL = "https://storage.googleapis.com/storage/v1/b/{bucket}/o"
PUBLIC_URL_PREFIX = "https://storage.googleapis.com/"


def split_gcs_path(gcs_path: str) -> Tuple[str, str]:
    """Split ``bucket/dir/path`` (optionally ``gs://``-prefixed) into bucket and prefix.

    Raises:
        ValueError: If ``gcs_path`` is empty or has no bucket name.
    """
    path = (gcs_path or "").strip()
    if path.startswith(GCS_SCHEME):
        path = path[len(GCS_SCHEME):]
    bucket, _, prefix = path.partition("/")
    if not bucket:
        raise ValueError("No GCS path provided")
    return bucket, prefix


def convert_to_gcs_uri(url: str) -> str:
    """Convert a ``https://storage.googleapis.com/...`` URL to a ``gs://`` URI."""
    return GCS_SCHEME + url.replace(PUBLIC_URL_PREFIX, "", 1)


class ObjectLister:
    def __init__(
        self,
        credentials: CredentialProvider,
        session: Optional[requests.Session] = None,
        *,
        max_attempts: int = 1,
        timeout: float = 60.0,
    ) -> None:
        self._credentials = credentials
        self._session = session or requests.Session()
        self._max_attempts = max_attempts
        self._timeout = timeout

    def iter_objects(self, bucket: str, prefix: str = "") -> Iterator[str]:
        """Yield ``gs://`` URIs page by page, in the order the API returns them."""
        url = STORAGE_API_URL.format(bucket=quote(bucket, safe=""))
        page_token: Optional[str] = None
        page = 0
        while True:
            params = {"prefix": prefix}
            if page_token:
                params["pageToken"] = page_token
            headers = self._credentials.auth_headers()
            headers["Accept"] = "application/json"
            data = send_json(
                self._session,
                "GET",
                url,
                params=params,
                headers=headers,
                max_attempts=self._max_attempts,
                timeout=self._timeout,
            )
            page += 1
            items = data.get("items") or []
            logger.debug("Page %d of gs://%s/%s: %d objects", page, bucket, prefix, len(items))
            for item in items:
                name = item.get("name")
                if name:
                    yield f"{GCS_SCHEME}{bucket}/{name}"
            page_token = data.get("nextPageToken")
            if not page_token:
                break

    def list_objects(self, bucket: str, prefix: str = "") -> List[str]:
        """Return every object URI under ``prefix``.

        Raises:
            requests.HTTPError: If any page fails; no partial list is returned.
            AuthError: If no access token is available.
        """
        uris = list(self.iter_objects(bucket, prefix))
        logger.info("Listed %d objects under gs://%s/%s", len(uris), bucket, prefix)
        return uris
