"""Unit tests for service implementations."""

import io
import json

import pytest
from PIL import Image

from image_variants.core.exceptions import (
    ImageProcessingError,
    MalformedBatchError,
    S3Error,
)
from image_variants.core.models import (
    ObjectRef,
    ResizeConfig,
    SkipReason,
    SourceObject,
    VariantKind,
)
from image_variants.core.services import (
    BatchOrchestrator,
    NotificationParser,
    ObjectStore,
    VariantService,
    summarize,
)
from image_variants.testing.fakes import (
    FakeLogger,
    FakeS3Client,
    create_test_image,
    create_test_svg,
    make_queue_event,
    make_s3_notification,
    setup_test_s3_environment,
)


def _service(fake_s3=None, logger=None):
    fake_s3 = fake_s3 or setup_test_s3_environment()
    logger = logger or FakeLogger()
    return VariantService(ObjectStore(fake_s3), logger), fake_s3, logger


def _width_of(data: bytes) -> int:
    with Image.open(io.BytesIO(data)) as img:
        return img.width


class TestNotificationParser:
    """Tests for NotificationParser."""

    def test_decode_key_plus_and_percent(self):
        """Test that '+' and percent escapes are decoded."""
        assert NotificationParser.decode_key("gallery/summer+beach%281%29.jpg") == (
            "gallery/summer beach(1).jpg"
        )

    def test_parse_record(self):
        """Test a queue record carrying one notification."""
        record = make_queue_event("media", ["gallery/2024/summer beach.jpeg"])["Records"][0]

        refs = NotificationParser.parse_record(record)

        assert refs == [ObjectRef(bucket="media", key="gallery/2024/summer beach.jpeg")]

    def test_parse_record_multiple_inner_records(self):
        """Test that every inner notification record is returned in order."""
        record = {"body": json.dumps(make_s3_notification("media", ["a/1.png", "b/2.png"]))}

        refs = NotificationParser.parse_record(record)

        assert [r.key for r in refs] == ["a/1.png", "b/2.png"]

    def test_parse_record_ignores_test_event(self):
        """Test that records without an s3 entry are ignored."""
        body = {"Service": "Amazon S3", "Event": "s3:TestEvent", "Records": [{"eventName": "x"}]}

        assert NotificationParser.parse_record({"body": json.dumps(body)}) == []

    def test_parse_record_without_records(self):
        """Test a notification body without Records."""
        assert NotificationParser.parse_record({"body": "{}"}) == []

    @pytest.mark.parametrize(
        "record",
        [
            {},
            {"body": "not json"},
            {"body": None},
            {"body": "[1, 2]"},
            {"body": json.dumps({"Records": [{"s3": {"bucket": {"name": "b"}}}]})},
            {"body": json.dumps({"Records": [{"s3": {"object": {"key": "a.png"}}}]})},
            {
                "body": json.dumps(
                    {"Records": [{"s3": {"bucket": {"name": ""}, "object": {"key": "a.png"}}}]}
                )
            },
        ],
    )
    def test_parse_record_malformed(self, record):
        """Test that malformed records raise MalformedBatchError."""
        with pytest.raises(MalformedBatchError):
            NotificationParser.parse_record(record)


class TestObjectStore:
    """Tests for ObjectStore."""

    def test_get_and_put(self):
        """Test a put followed by a get returns the same bytes."""
        fake_s3 = FakeS3Client()
        fake_s3.create_bucket("bucket")
        store = ObjectStore(fake_s3)

        store.put("bucket", "resized/a-w50.png", b"data", "image/png")

        assert store.get("bucket", "resized/a-w50.png") == b"data"
        stored = fake_s3.get_bucket("bucket").get_object("resized/a-w50.png")
        assert stored.content_type == "image/png"

    def test_get_missing_object_raises_s3_error(self):
        """Test that store failures surface as S3Error."""
        fake_s3 = FakeS3Client()
        fake_s3.create_bucket("bucket")

        with pytest.raises(S3Error, match="S3 operation 'get' failed"):
            ObjectStore(fake_s3).get("bucket", "missing.png")

    def test_put_failure_raises_s3_error(self):
        """Test that put failures surface as S3Error."""
        fake_s3 = FakeS3Client()
        fake_s3.create_bucket("bucket")
        fake_s3.set_failure_mode(True, "Access denied")

        with pytest.raises(S3Error, match="Access denied"):
            ObjectStore(fake_s3).put("bucket", "k", b"", "image/png")


class TestVariantServiceSkips:
    """Tests for objects that produce no variants."""

    @pytest.mark.parametrize(
        "key,reason",
        [
            ("resized/gallery/photo-w50.jpg", SkipReason.ALREADY_RESIZED),
            ("photo.jpg", SkipReason.MISSING_SECTION),
            ("gallery/readme.txt", SkipReason.UNSUPPORTED_EXTENSION),
        ],
    )
    def test_skip_reasons(self, key, reason):
        """Test skips are reported without any store traffic."""
        service, fake_s3, _ = _service()

        result = service.process_object(ObjectRef(bucket="test-media", key=key), ResizeConfig())

        assert result.skip_reason == reason
        assert result.success is False
        assert result.variant_keys == []
        assert fake_s3.get_count == 0
        assert fake_s3.put_count == 0

    def test_not_whitelisted(self):
        """Test objects outside the allow-list are skipped."""
        service, fake_s3, logger = _service()
        config = ResizeConfig(allowed_sections=["products"])

        result = service.process_object(
            ObjectRef(bucket="test-media", key="gallery/photo.jpg"), config
        )

        assert result.skip_reason == SkipReason.NOT_WHITELISTED
        assert fake_s3.put_count == 0
        assert any("not-whitelisted" in log["message"] for log in logger.get_logs("INFO"))

    def test_custom_dest_prefix_guard(self):
        """Test the recursion guard follows the configured prefix."""
        service, fake_s3, _ = _service()
        fake_s3.get_bucket("test-media").add_object("thumbs/x.png", create_test_image(fmt="PNG"))

        result = service.process_object(
            ObjectRef(bucket="test-media", key="thumbs/x.png"),
            ResizeConfig(dest_prefix="thumbs/"),
        )

        assert result.skip_reason == SkipReason.ALREADY_RESIZED


class TestVariantServiceRaster:
    """Tests for raster sources."""

    def test_jpeg_source_writes_full_matrix(self):
        """Test every width gets an original-format and a WebP variant."""
        service, fake_s3, _ = _service()

        result = service.process_object(
            ObjectRef(bucket="test-media", key="gallery/photo.jpg"), ResizeConfig()
        )

        assert result.success is True
        assert result.skip_reason is None
        assert len(result.variant_keys) == 14
        assert result.variant_keys[:2] == [
            "resized/gallery/photo-w50.jpg",
            "resized/gallery/photo-w50.webp",
        ]
        assert result.variant_keys[-1] == "resized/gallery/photo-w1200.webp"
        assert fake_s3.get_count == 1
        assert fake_s3.put_count == 14

    def test_listed_width_in_key_clamped_width_in_pixels(self):
        """Test keys carry listed widths while pixels never exceed the source."""
        service, fake_s3, _ = _service()

        service.process_object(ObjectRef(bucket="test-media", key="icons/logo.png"), ResizeConfig())

        bucket = fake_s3.get_bucket("test-media")
        for width, expected in ((200, 200), (400, 300), (600, 300), (1200, 300)):
            png = bucket.get_object(f"resized/icons/logo-w{width}.png")
            webp = bucket.get_object(f"resized/icons/logo-w{width}.webp")
            assert png.content_type == "image/png"
            assert webp.content_type == "image/webp"
            assert _width_of(png.body) == expected
            assert _width_of(webp.body) == expected

    def test_nested_directories_and_spaces(self):
        """Test sub-directories and spaces are preserved in destination keys."""
        service, fake_s3, _ = _service()

        result = service.process_object(
            ObjectRef(bucket="test-media", key="gallery/2024/summer beach.jpeg"),
            ResizeConfig(widths=[100, 800]),
        )

        assert result.variant_keys == [
            "resized/gallery/2024/summer beach-w100.jpeg",
            "resized/gallery/2024/summer beach-w100.webp",
            "resized/gallery/2024/summer beach-w800.jpeg",
            "resized/gallery/2024/summer beach-w800.webp",
        ]

    def test_dest_bucket(self):
        """Test variants go to the configured destination bucket."""
        service, fake_s3, _ = _service()

        service.process_object(
            ObjectRef(bucket="test-media", key="gallery/photo.jpg"),
            ResizeConfig(dest_bucket="test-dest", widths=[50]),
        )

        assert fake_s3.get_bucket("test-dest").get_object("resized/gallery/photo-w50.jpg")
        assert fake_s3.get_bucket("test-media").get_object("resized/gallery/photo-w50.webp") is None

    def test_misnamed_source_is_undecodable(self):
        """Test a supported extension on non-image bytes raises."""
        fake_s3 = setup_test_s3_environment()
        fake_s3.get_bucket("test-media").add_object("gallery/fake.png", b"not really a png")
        service, _, _ = _service(fake_s3)

        with pytest.raises(ImageProcessingError):
            service.process_object(
                ObjectRef(bucket="test-media", key="gallery/fake.png"), ResizeConfig()
            )
        assert fake_s3.put_count == 0

    def test_missing_source_raises_s3_error(self):
        """Test a notification for a vanished object raises S3Error."""
        service, _, _ = _service()

        with pytest.raises(S3Error):
            service.process_object(
                ObjectRef(bucket="test-media", key="gallery/gone.jpg"), ResizeConfig()
            )

    def test_put_failure_keeps_earlier_variants(self):
        """Test a failing put aborts the object after earlier writes landed."""
        fake_s3 = setup_test_s3_environment()
        fake_s3.fail_after_puts(3)
        service, _, _ = _service(fake_s3)

        with pytest.raises(S3Error):
            service.process_object(
                ObjectRef(bucket="test-media", key="gallery/photo.jpg"), ResizeConfig()
            )

        bucket = fake_s3.get_bucket("test-media")
        assert bucket.get_object("resized/gallery/photo-w50.jpg") is not None
        assert bucket.get_object("resized/gallery/photo-w50.webp") is not None
        assert bucket.get_object("resized/gallery/photo-w100.jpg") is not None
        assert bucket.get_object("resized/gallery/photo-w100.webp") is None

    def test_logs_success(self):
        """Test a summary log line is emitted with context metadata."""
        service, _, logger = _service()

        service.process_object(
            ObjectRef(bucket="test-media", key="gallery/photo.jpg"), ResizeConfig(widths=[50])
        )

        info = [log for log in logger.get_logs("INFO") if log["message"] == "Wrote variants"]
        assert len(info) == 1
        assert info[0]["key"] == "gallery/photo.jpg"
        assert info[0]["variants"] == 2
        assert info[0]["native_width"] == 1000


class TestVariantServiceVector:
    """Tests for SVG sources."""

    def test_svg_variants(self):
        """Test each width gets a vector copy and a rasterized WebP."""
        service, fake_s3, _ = _service()

        result = service.process_object(
            ObjectRef(bucket="test-media", key="gallery/a.svg"), ResizeConfig(widths=[400])
        )

        assert result.variant_keys == [
            "resized/gallery/a-w400.svg",
            "resized/gallery/a-w400.webp",
        ]
        bucket = fake_s3.get_bucket("test-media")
        copy = bucket.get_object("resized/gallery/a-w400.svg")
        assert copy.body == create_test_svg()
        assert copy.content_type == "image/svg+xml"
        with Image.open(io.BytesIO(bucket.get_object("resized/gallery/a-w400.webp").body)) as img:
            assert img.format == "WEBP"
            assert img.size == (400, 200)

    def test_render_variants_clamps_to_intrinsic_width(self):
        """Test vector renders never exceed the density-scaled intrinsic width."""
        service, _, _ = _service()
        source = SourceObject(
            bucket="b",
            key="icons/a.svg",
            section="icons",
            remainder="a.svg",
            extension="svg",
            working_format="svg",
        )

        variants = list(
            service.render_variants(source, create_test_svg(), ResizeConfig(widths=[400, 600]))
        )

        assert [v.kind for v in variants] == [
            VariantKind.VECTOR_COPY,
            VariantKind.WEBP,
            VariantKind.VECTOR_COPY,
            VariantKind.WEBP,
        ]
        assert source.native_width == 417
        assert [v.pixel_width for v in variants] == [400, 400, 417, 417]
        assert variants[3].key == "resized/icons/a-w600.webp"


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator."""

    def _orchestrator(self, fake_s3=None):
        service, fake_s3, logger = _service(fake_s3)
        return BatchOrchestrator(service, logger), fake_s3

    def test_process_event(self):
        """Test records are processed in order with skips reported."""
        orchestrator, fake_s3 = self._orchestrator()
        event = make_queue_event(
            "test-media", ["gallery/photo.jpg", "resized/gallery/photo-w50.jpg", "gallery/readme.txt"]
        )

        results = orchestrator.process_event(event, ResizeConfig(widths=[50, 100]))

        assert [r.key for r in results] == [
            "gallery/photo.jpg",
            "resized/gallery/photo-w50.jpg",
            "gallery/readme.txt",
        ]
        assert results[0].success is True
        assert results[1].skip_reason == SkipReason.ALREADY_RESIZED
        assert results[2].skip_reason == SkipReason.UNSUPPORTED_EXTENSION
        assert fake_s3.put_count == 4

    def test_empty_event(self):
        """Test an event without records is a no-op."""
        orchestrator, fake_s3 = self._orchestrator()

        assert orchestrator.process_event({}, ResizeConfig()) == []
        assert orchestrator.process_event({"Records": []}, ResizeConfig()) == []
        assert fake_s3.operation_count == 0

    def test_non_dict_event(self):
        """Test a non-object event is rejected."""
        orchestrator, _ = self._orchestrator()

        with pytest.raises(MalformedBatchError):
            orchestrator.process_event(["not", "an", "event"], ResizeConfig())

    def test_failure_aborts_remaining_records(self):
        """Test the first failure propagates and later records are not attempted."""
        orchestrator, fake_s3 = self._orchestrator()
        event = make_queue_event("test-media", ["gallery/missing.jpg", "gallery/photo.jpg"])

        with pytest.raises(S3Error):
            orchestrator.process_event(event, ResizeConfig())

        assert fake_s3.get_count == 1
        assert fake_s3.put_count == 0

    def test_process_object(self):
        """Test single object processing outside a batch."""
        orchestrator, _ = self._orchestrator()

        result = orchestrator.process_object(
            ObjectRef(bucket="test-media", key="icons/logo.png"), ResizeConfig(widths=[50])
        )

        assert result.variant_keys == ["resized/icons/logo-w50.png", "resized/icons/logo-w50.webp"]


class TestSummarize:
    def test_summary_shape(self):
        service, _, _ = _service()
        result = service.process_object(
            ObjectRef(bucket="test-media", key="resized/x.png"), ResizeConfig()
        )

        body = summarize([result])

        assert body == {
            "ok": True,
            "results": [
                {"bucket": "test-media", "key": "resized/x.png", "ok": False, "reason": "already-resized"}
            ],
        }
        assert results
