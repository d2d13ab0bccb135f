"""
Tests for the order pipeline.
"""

import threading

import pytest

from photobook_toolkit.build import BuildConfig, BuildCoordinator, BuildState
from photobook_toolkit.config import PhotobookConfig
from photobook_toolkit.core.errors import BuildSubmissionError, OrderError, UploadPermanentError
from photobook_toolkit.layout import CompositionStore
from photobook_toolkit.order import create_services, place_order
from photobook_toolkit.persistence import CompositionPersistence, FileBlobStore
from photobook_toolkit.upload import UploadConfig, UploadOrchestrator

FAST_BUILD = BuildConfig(poll_interval=0.01, poll_multiplier=1.0, max_poll_interval=0.01, max_wait=5.0)
FAST_UPLOAD = UploadConfig(max_workers=2, max_retries=0, backoff_seconds=0.0)


class FakeUploadTransport:
    def __init__(self, rejected=()):
        self.rejected = set(rejected)
        self.calls = []
        self._lock = threading.Lock()

    def upload(self, data, metadata):
        with self._lock:
            self.calls.append(metadata.identifier)
        if metadata.identifier in self.rejected:
            raise UploadPermanentError("HTTP 413")
        return f"https://cdn.example/{metadata.filename}"


class FakeBuildTransport:
    def __init__(self, error=None):
        self.error = error
        self.submitted = []

    def create_pdf(self, parameters):
        self.submitted.append(parameters)
        if self.error is not None:
            raise self.error
        return {"coverUrl": "https://pdf/c.pdf", "insideUrl": "https://pdf/i.pdf", "jobId": "7"}

    def job_status(self, job_id):
        return {"status": "succeeded"}


@pytest.fixture
def store(tmp_path, product, cover_layout, content_layouts, asset_factory):
    store = CompositionStore(persistence=CompositionPersistence(FileBlobStore(tmp_path)))
    store.select_product(product, [asset_factory("a"), asset_factory("b")], [cover_layout], content_layouts)
    return store


class TestPlaceOrder:
    """Tests for place_order."""

    def test_when_all_uploads_succeed_then_build_submitted_with_urls(self, store, tmp_path):
        uploads = FakeUploadTransport()
        builds = FakeBuildTransport()
        with UploadOrchestrator(uploads, FAST_UPLOAD) as uploader:
            coordinator = BuildCoordinator(builds, uploader.remote_reference, FAST_BUILD)

            job = place_order(store, uploader, coordinator, upload_timeout=10.0)

            assert job.wait(10.0)
            assert job.state is BuildState.SUCCEEDED
            coordinator.shutdown(timeout=1.0)

        assert sorted(uploads.calls) == ["a", "b"]
        asset_urls = [page["asset"]["url"] for page in builds.submitted[0]["pages"] if "asset" in page]
        assert set(asset_urls) == {"https://cdn.example/a.jpg", "https://cdn.example/b.jpg"}
        assert (tmp_path / "photobook.blob").exists()

    def test_when_store_has_no_persistence_then_persist_stage(self, product, cover_layout, content_layouts, asset_factory):
        store = CompositionStore()
        store.select_product(product, [asset_factory("a")], [cover_layout], content_layouts)
        uploads = FakeUploadTransport()
        with UploadOrchestrator(uploads, FAST_UPLOAD) as uploader:
            coordinator = BuildCoordinator(FakeBuildTransport(), uploader.remote_reference, FAST_BUILD)
            with pytest.raises(OrderError) as exc_info:
                place_order(store, uploader, coordinator)

        assert exc_info.value.stage == "persist"
        assert uploads.calls == []

    def test_when_upload_rejected_then_upload_stage_and_no_build(self, store):
        builds = FakeBuildTransport()
        with UploadOrchestrator(FakeUploadTransport(rejected={"b"}), FAST_UPLOAD) as uploader:
            coordinator = BuildCoordinator(builds, uploader.remote_reference, FAST_BUILD)
            with pytest.raises(OrderError) as exc_info:
                place_order(store, uploader, coordinator, upload_timeout=10.0)

        assert exc_info.value.stage == "upload"
        assert isinstance(exc_info.value.__cause__, UploadPermanentError)
        assert builds.submitted == []

    def test_when_submission_fails_then_build_stage(self, store):
        builds = FakeBuildTransport(error=BuildSubmissionError("HTTP 500"))
        with UploadOrchestrator(FakeUploadTransport(), FAST_UPLOAD) as uploader:
            coordinator = BuildCoordinator(builds, uploader.remote_reference, FAST_BUILD)
            with pytest.raises(OrderError) as exc_info:
                place_order(store, uploader, coordinator, upload_timeout=10.0)

        assert exc_info.value.stage == "build"


class TestCreateServices:
    """Tests for create_services wiring."""

    def test_when_created_then_components_share_storage(self, tmp_path):
        config = PhotobookConfig(storage_dir=tmp_path, api_base_url="https://api.example/", api_key="k")
        services = create_services(config)
        try:
            assert services.client.base_url == "https://api.example"
            assert services.uploader.config == config.upload
            assert services.coordinator.config == config.build
            assert services.store.persistence is not None
        finally:
            services.close()
