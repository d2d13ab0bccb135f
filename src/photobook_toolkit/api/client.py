"""
Module: api.client

Purpose:
    HTTP client for the photobook backend: catalog fetch, asset upload,
    PDF build submission and build status. Implements both UploadTransport
    and BuildTransport, translating HTTP failures into the package's errors.

Key Classes:
    - PhotobookAPIClient: requests.Session based client

Dependencies:
    - requests: HTTP transport

Used By:
    - order.place_order (via UploadOrchestrator / BuildCoordinator)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..core.errors import (
    BuildStatusError,
    BuildSubmissionError,
    CatalogError,
    UploadPermanentError,
    UploadTransientError,
)
from ..core.models.catalog import Catalog, LayoutTemplate, ProductTemplate
from ..upload.models import UploadMetadata

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

CATALOG_ENDPOINT = "ios/get_initial_data"
UPLOAD_ENDPOINT = "upload/"
GENERATE_PDF_ENDPOINT = "ios/generate_pdf"
PDF_STATUS_ENDPOINT = "ios/pdf_status/{job_id}"

_NETWORK_ERRORS = (requests.ConnectionError, requests.Timeout)


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class PhotobookAPIClient:
    """
    Client for the photobook backend.

    Usage:
        with PhotobookAPIClient(base_url, api_key) as client:
            catalog = client.fetch_catalog()

    Attributes:
        base_url: Backend root, without trailing slash
        timeout: Per-request timeout in seconds
        session: Underlying requests.Session
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"ApiKey {api_key}"})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "PhotobookAPIClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Catalog
    # ─────────────────────────────────────────────────────────────────────────

    def fetch_catalog(self) -> Catalog:
        """
        Fetch products and layouts.

        Malformed entries are skipped with a warning.

        Raises:
            CatalogError: Request failed, or products or layouts are
                missing or parse to nothing
        """
        try:
            response = self._send("GET", CATALOG_ENDPOINT)
        except requests.RequestException as e:
            raise CatalogError(f"Catalog request failed: {e}") from e
        if response.status_code >= 400:
            raise CatalogError(f"Catalog request failed with HTTP {response.status_code}")

        body = _json_or_none(response)
        if not isinstance(body, dict):
            raise CatalogError("Catalog reply is not a JSON object")
        products_data = body.get("products")
        layouts_data = body.get("layouts")
        if not isinstance(products_data, list) or not isinstance(layouts_data, list):
            raise CatalogError("Catalog reply is missing products or layouts")

        layouts = _parse_entries(layouts_data, LayoutTemplate.from_dict, "layout")
        if not layouts:
            raise CatalogError("No layouts could be parsed")
        products = _parse_entries(products_data, ProductTemplate.from_dict, "product")
        if not products:
            raise CatalogError("No products could be parsed")

        catalog = Catalog.from_items(products, layouts)
        logger.info(f"Fetched catalog: {len(products)} products, {len(layouts)} layouts")
        return catalog

    # ─────────────────────────────────────────────────────────────────────────
    # Upload
    # ─────────────────────────────────────────────────────────────────────────

    def upload(self, data: bytes, metadata: UploadMetadata) -> str:
        """
        Upload one asset's bytes.

        Returns:
            URL of the stored image (the ``full`` field of the reply)

        Raises:
            UploadTransientError: Connection error, timeout, 5xx or 429
            UploadPermanentError: Other 4xx, or a reply without a url
        """
        files = {"file": (metadata.filename, data, metadata.content_type)}
        form = {
            "identifier": metadata.identifier,
            "width": str(metadata.width),
            "height": str(metadata.height),
        }
        try:
            response = self._send("POST", UPLOAD_ENDPOINT, files=files, data=form)
        except _NETWORK_ERRORS as e:
            raise UploadTransientError(f"Upload of {metadata.identifier} failed: {e}") from e
        except requests.RequestException as e:
            raise UploadPermanentError(f"Upload of {metadata.identifier} failed: {e}") from e

        status = response.status_code
        if _is_transient_status(status):
            raise UploadTransientError(f"Upload of {metadata.identifier} got HTTP {status}")
        if status >= 400:
            raise UploadPermanentError(f"Upload of {metadata.identifier} rejected with HTTP {status}")

        body = _json_or_none(response)
        url = body.get("full") if isinstance(body, dict) else None
        if not isinstance(url, str) or not url:
            raise UploadPermanentError(f"Upload reply for {metadata.identifier} has no url")
        logger.debug(f"Uploaded {metadata.filename} -> {url}")
        return url

    # ─────────────────────────────────────────────────────────────────────────
    # Build
    # ─────────────────────────────────────────────────────────────────────────

    def create_pdf(self, parameters: dict) -> dict:
        """
        Submit a PDF build.

        Raises:
            BuildSubmissionError: Request failed or reply is not an object
        """
        try:
            response = self._send("POST", GENERATE_PDF_ENDPOINT, json=parameters)
        except requests.RequestException as e:
            raise BuildSubmissionError(f"PDF submission failed: {e}") from e
        if response.status_code >= 400:
            raise BuildSubmissionError(f"PDF submission failed with HTTP {response.status_code}")
        body = _json_or_none(response)
        if not isinstance(body, dict):
            raise BuildSubmissionError("PDF submission reply is not a JSON object")
        return body

    def job_status(self, job_id: str) -> dict:
        """
        Fetch a build job's status.

        An unparseable body is returned as an empty dict.

        Raises:
            BuildStatusError: Connection error, timeout, 5xx or 429
            BuildSubmissionError: Other 4xx (unknown job)
        """
        endpoint = PDF_STATUS_ENDPOINT.format(job_id=job_id)
        try:
            response = self._send("GET", endpoint)
        except requests.RequestException as e:
            raise BuildStatusError(f"Status request for job {job_id} failed: {e}") from e
        status = response.status_code
        if _is_transient_status(status):
            raise BuildStatusError(f"Status request for job {job_id} got HTTP {status}")
        if status >= 400:
            raise BuildSubmissionError(f"Status request for job {job_id} rejected with HTTP {status}")
        body = _json_or_none(response)
        return body if isinstance(body, dict) else {}

    def _send(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{endpoint}"
        return self.session.request(method, url, timeout=self.timeout, **kwargs)


def _parse_entries(entries: list, parse, kind: str) -> list:
    parsed = []
    for index, entry in enumerate(entries):
        try:
            parsed.append(parse(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed {kind} #{index}: {e}")
    return parsed
