"""
Module: order

Purpose:
    Run an order from start to finish.
    Persist → Upload → Verify → Submit build

Key Functions:
    - create_services(): Wire the components from a PhotobookConfig
    - place_order(): Main entry point for ordering a composition

Key Classes:
    - OrderServices: The wired components of one session

Dependencies:
    - layout.store: Composition ownership and persistence
    - upload.orchestrator: Asset uploads
    - build.coordinator: PDF build and polling

Used By:
    - Applications embedding the toolkit
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .api.client import PhotobookAPIClient
from .build.coordinator import BuildCoordinator
from .build.models import BuildJob
from .config import PhotobookConfig
from .core.errors import BuildSubmissionError, OrderError, PersistenceError, UploadError
from .layout.store import CompositionStore
from .persistence.adapter import CompositionPersistence
from .persistence.blob_store import FileBlobStore
from .upload.orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderServices:
    """
    Components of one ordering session, built by create_services().

    Attributes:
        client: HTTP client (upload and build transport)
        store: Composition store with persistence attached
        uploader: Upload orchestrator writing its ledger next to the composition
        coordinator: Build coordinator resolving references through the uploader
    """

    client: PhotobookAPIClient
    store: CompositionStore
    uploader: UploadOrchestrator
    coordinator: BuildCoordinator

    def close(self) -> None:
        self.coordinator.shutdown(timeout=1.0)
        self.uploader.shutdown()
        self.client.close()


def create_services(config: PhotobookConfig) -> OrderServices:
    """Wire client, store, uploader and coordinator from configuration."""
    blobs = FileBlobStore(config.storage_dir)
    client = PhotobookAPIClient(
        config.api_base_url,
        api_key=config.api_key,
        timeout=config.request_timeout,
    )
    store = CompositionStore(persistence=CompositionPersistence(blobs))
    uploader = UploadOrchestrator(client, config.upload, ledger=blobs)
    coordinator = BuildCoordinator(client, uploader.remote_reference, config.build)
    logger.debug(f"Created services with storage at {config.storage_dir}")
    return OrderServices(client=client, store=store, uploader=uploader, coordinator=coordinator)


def place_order(
    store: CompositionStore,
    uploader: UploadOrchestrator,
    coordinator: BuildCoordinator,
    upload_timeout: Optional[float] = None,
) -> BuildJob:
    """
    Order the store's composition.

    Pipeline:
    1. Persist the composition and queue its assets
    2. Wait for uploads to settle
    3. Require every asset uploaded
    4. Submit the PDF build (polling continues in the background)

    Args:
        store: Store holding the composition to order
        uploader: Orchestrator receiving the assets
        coordinator: Coordinator submitting the build
        upload_timeout: Seconds to wait for uploads (None = indefinite)

    Returns:
        BuildJob in AWAITING_COMPLETION

    Raises:
        OrderError: With ``stage`` "persist", "upload" or "build"
    """
    start_time = time.perf_counter()

    # 1. Persist and queue
    try:
        asset_count = store.start_order(uploader)
    except PersistenceError as e:
        raise OrderError("persist", str(e)) from e
    logger.info(f"Ordering composition with {store.page_count} pages and {asset_count} assets")

    # 2. Wait for uploads
    if not uploader.wait_until_idle(upload_timeout):
        raise OrderError(
            "upload",
            f"{uploader.pending_count} uploads still running after {upload_timeout}s",
        )

    # 3. Verify
    try:
        uploader.require_ready()
    except UploadError as e:
        raise OrderError("upload", str(e)) from e

    # 4. Submit
    try:
        job = coordinator.submit(store.snapshot())
    except BuildSubmissionError as e:
        raise OrderError("build", str(e)) from e

    elapsed = time.perf_counter() - start_time
    logger.info(f"Order submitted as build job {job.job_id} in {elapsed:.2f}s")
    return job
