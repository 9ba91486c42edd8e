"""
Layout Client
=============
Minimal client for the document layout-analysis REST service
(prebuilt-layout model). Submits a single-page PDF, polls the operation
until it settles and returns the analyze result as a plain dict.

Authentication and retries are left to the caller; any transport error,
HTTP error or failed operation surfaces as FetchError.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "prebuilt-layout"
DEFAULT_API_VERSION = "2023-07-31"


class LayoutClient:
    """
    Explicitly constructed client; one instance per batch.

    Usage:
        client = LayoutClient.from_env()
        result = client.analyze(pdf_bytes, page_index=12)
    """

    def __init__(
        self,
        endpoint: str,
        key: str,
        model_id: str = DEFAULT_MODEL_ID,
        api_version: str = DEFAULT_API_VERSION,
        poll_interval: float = 1.0,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.key = key
        self.model_id = model_id
        self.api_version = api_version
        self.poll_interval = poll_interval
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls, **kwargs) -> "LayoutClient":
        """
        Build a client from AZURE_ENDPOINT and AZURE_KEY.

        Raises:
            RuntimeError: If either variable is missing.
        """
        endpoint = os.environ.get("AZURE_ENDPOINT")
        key = os.environ.get("AZURE_KEY")
        if not endpoint or not key:
            raise RuntimeError(
                "AZURE_ENDPOINT and AZURE_KEY must be set to call the layout service"
            )
        return cls(endpoint, key, **kwargs)

    @property
    def analyze_url(self) -> str:
        return (
            f"{self.endpoint}/formrecognizer/documentModels/"
            f"{self.model_id}:analyze?api-version={self.api_version}"
        )

    def analyze(self, document: bytes, page_index: int) -> dict[str, Any]:
        """
        Run layout analysis on a single-page PDF.

        Args:
            document: PDF bytes.
            page_index: Source page index, used for error reporting only.

        Returns:
            The `analyzeResult` object of the finished operation.

        Raises:
            FetchError: On any transport, HTTP or service-side failure.
        """
        try:
            response = self.session.post(
                self.analyze_url,
                data=document,
                headers={
                    "Ocp-Apim-Subscription-Key": self.key,
                    "Content-Type": "application/pdf",
                },
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(page_index, f"submit failed: {e}") from e

        operation_url = response.headers.get("Operation-Location")
        if not operation_url:
            raise FetchError(page_index, "service returned no Operation-Location")

        logger.debug(f"Page {page_index}: analysis submitted")
        return self._poll(operation_url, page_index)

    def _poll(self, operation_url: str, page_index: int) -> dict[str, Any]:
        while True:
            try:
                response = self.session.get(
                    operation_url,
                    headers={"Ocp-Apim-Subscription-Key": self.key},
                )
                response.raise_for_status()
                body = response.json()
            except (requests.RequestException, ValueError) as e:
                raise FetchError(page_index, f"poll failed: {e}") from e

            status = body.get("status")
            if status == "succeeded":
                return body.get("analyzeResult") or {}
            if status == "failed":
                error = body.get("error") or {}
                raise FetchError(
                    page_index,
                    f"analysis failed: {error.get('message', 'unknown error')}",
                )

            time.sleep(self.poll_interval)
