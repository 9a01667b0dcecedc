"""Service implementations for the resize pipeline."""

import json
import time
import urllib.parse
from typing import Any, Dict, Iterator, List

from .error_handling import (
    BatchOperationContextManager,
    s3_operation,
    with_error_handling,
)
from .exceptions import MalformedBatchError
from .formats import content_type_for, is_supported, resolve, sniff_format
from .models import (
    ObjectRef,
    ProcessingResult,
    ResizeConfig,
    SkipReason,
    SourceObject,
    Variant,
    VariantKind,
)
from .observability import LogContext
from .paths import build_key, split_remainder
from .protocols import LoggerProtocol, S3ClientProtocol
from . import raster, vector, widths
from .routing import extension_of, route


class NotificationParser:
    """Turns delivery-queue records into bucket/key references."""

    @staticmethod
    def decode_key(raw_key: str) -> str:
        """Storage notifications URL-encode keys, with '+' standing for a space."""
        return urllib.parse.unquote_plus(raw_key)

    @classmethod
    def parse_record(cls, record: Dict[str, Any]) -> List[ObjectRef]:
        """
        Parse one queue record whose body is a JSON storage notification.

        Inner records without an ``s3`` entry (such as ``s3:TestEvent``)
        are ignored. Raises ``MalformedBatchError`` when the body is not
        JSON or an ``s3`` entry lacks its bucket name or object key.
        """
        if not isinstance(record, dict) or "body" not in record:
            raise MalformedBatchError("Queue record has no body")

        try:
            body = json.loads(record["body"])
        except (TypeError, ValueError) as exc:
            raise MalformedBatchError(f"Queue record body is not valid JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise MalformedBatchError("Notification body must be a JSON object")

        refs = []
        for inner in body.get("Records") or []:
            s3_info = inner.get("s3") if isinstance(inner, dict) else None
            if not s3_info:
                continue
            try:
                bucket = s3_info["bucket"]["name"]
                raw_key = s3_info["object"]["key"]
            except (KeyError, TypeError) as exc:
                raise MalformedBatchError(f"Notification record missing {exc}") from exc
            if not bucket or not raw_key:
                raise MalformedBatchError("Notification record has an empty bucket or key")
            refs.append(ObjectRef(bucket=bucket, key=cls.decode_key(raw_key)))
        return refs


class ObjectStore:
    """Byte-level get/put against S3."""

    def __init__(self, s3_client: S3ClientProtocol):
        self._s3_client = s3_client

    @s3_operation
    def get(self, bucket: str, key: str) -> bytes:
        response = self._s3_client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()

    @s3_operation
    def put(self, bucket: str, key: str, body: bytes, content_type: str) -> None:
        self._s3_client.put_object(
            Bucket=bucket, Key=key, Body=body, ContentType=content_type
        )


@with_error_handling
def _decode_raster(data: bytes):
    return raster.decode(data)


class VariantService:
    """Routes, resolves and renders the variant matrix for single objects."""

    def __init__(self, store: ObjectStore, logger: LoggerProtocol):
        self._store = store
        self._logger = logger

    def process_object(self, ref: ObjectRef, config: ResizeConfig) -> ProcessingResult:
        """
        Process one object end to end.

        Skips are returned as results; store and decode failures raise.
        Variants are written as they are produced, so a failure part way
        through leaves the earlier widths in place.
        """
        start_time = time.time()
        log_context = LogContext.for_object(ref.bucket, ref.key, component="variant_service")
        result = ProcessingResult(bucket=ref.bucket, key=ref.key)

        routed = route(ref.key, config.dest_root, config.allowed_sections)
        if isinstance(routed, SkipReason):
            self._logger.info(f"Skipping object: {routed.value}", log_context)
            result.skip_reason = routed
            return result

        extension = extension_of(routed.remainder)
        if not is_supported(extension):
            self._logger.info("Skipping unsupported extension", log_context.with_metadata(extension=extension))
            result.skip_reason = SkipReason.UNSUPPORTED_EXTENSION
            return result

        self._logger.debug("Downloading source", log_context.with_operation("download"))
        data = self._store.get(ref.bucket, ref.key)

        sniffed = sniff_format(data)
        working_format = resolve(extension, sniffed)
        if working_format is None:
            self._logger.info("Skipping after format resolution", log_context.with_metadata(sniffed=sniffed))
            result.skip_reason = SkipReason.UNSUPPORTED_EXTENSION
            return result

        source = SourceObject(
            bucket=ref.bucket,
            key=ref.key,
            section=routed.section,
            remainder=routed.remainder,
            extension=extension,
            sniffed_format=sniffed,
            working_format=working_format,
        )

        dest_bucket = config.dest_bucket or ref.bucket
        for variant in self.render_variants(source, data, config):
            self._logger.debug(
                "Uploading variant",
                log_context.with_operation("upload").with_metadata(dest_key=variant.key, kind=variant.kind.value),
            )
            self._store.put(dest_bucket, variant.key, variant.body, variant.content_type)
            result.variant_keys.append(variant.key)

        result.success = True
        result.processing_time = time.time() - start_time
        self._logger.info(
            "Wrote variants",
            log_context,
            variants=len(result.variant_keys),
            format=working_format,
            native_width=source.native_width,
        )
        return result

    def render_variants(
        self, source: SourceObject, data: bytes, config: ResizeConfig
    ) -> Iterator[Variant]:
        """Yield every variant for ``source`` in width order, without touching the store."""
        directory, base_name = split_remainder(source.remainder, source.extension)

        def key_for(width: int, extension: str) -> str:
            return build_key(config.dest_root, source.section, directory, base_name, width, extension)

        if source.is_vector:
            source.native_width = vector.intrinsic_width(data, config.vector_density)
            source.native_height = int(round(source.native_width * vector.aspect_ratio(data)))
            for target in widths.plan(source.native_width, config.widths):
                prepared = vector.prepare(data, target.clamped, config.svg_base_width_min)
                yield Variant(
                    kind=VariantKind.VECTOR_COPY,
                    width=target.requested,
                    pixel_width=target.clamped,
                    key=key_for(target.requested, "svg"),
                    content_type=content_type_for("svg"),
                    body=prepared.vector_copy,
                )
                yield Variant(
                    kind=VariantKind.WEBP,
                    width=target.requested,
                    pixel_width=prepared.target_width,
                    key=key_for(target.requested, "webp"),
                    content_type=content_type_for("webp"),
                    body=vector.rasterize_to_webp(
                        prepared,
                        lossless=config.webp_svg_mode == "lossless",
                        quality=config.webp_quality,
                    ),
                )
            return

        image = _decode_raster(data)
        source.native_width, source.native_height = image.size
        options = raster.EncodeOptions(
            jpeg_quality=config.jpeg_quality,
            png_compression=config.png_compression,
            webp_quality=config.webp_quality,
        )
        for target in widths.plan(source.native_width, config.widths):
            encoded = raster.encode_image(image, target.clamped, source.working_format, options)
            yield Variant(
                kind=VariantKind.ORIGINAL_FORMAT,
                width=target.requested,
                pixel_width=encoded.pixel_width,
                key=key_for(target.requested, encoded.original_extension),
                content_type=encoded.original_content_type,
                body=encoded.original,
            )
            yield Variant(
                kind=VariantKind.WEBP,
                width=target.requested,
                pixel_width=encoded.pixel_width,
                key=key_for(target.requested, "webp"),
                content_type=content_type_for("webp"),
                body=encoded.webp,
            )


class BatchOrchestrator:
    """Runs a whole delivery batch: records, then objects, then widths."""

    def __init__(self, variant_service: VariantService, logger: LoggerProtocol):
        self._variant_service = variant_service
        self._logger = logger

    def process_event(
        self, event: Dict[str, Any], config: ResizeConfig
    ) -> List[ProcessingResult]:
        """
        Process every object referenced by a queue event.

        Any exception aborts the rest of the batch and propagates, so the
        queue redelivers the whole batch.
        """
        if not isinstance(event, dict):
            raise MalformedBatchError("Event must be a JSON object")
        records = event.get("Records") or []

        results: List[ProcessingResult] = []
        with BatchOperationContextManager(operation_name="Resize batch") as batch:
            for record in records:
                for ref in NotificationParser.parse_record(record):
                    result = self._variant_service.process_object(ref, config)
                    if result.skip_reason is not None:
                        batch.add_skip(result.skip_reason, ref.key)
                    else:
                        batch.add_processed()
                    results.append(result)
        return results

    def process_object(self, ref: ObjectRef, config: ResizeConfig) -> ProcessingResult:
        """Process a single object outside of a queue batch."""
        return self._variant_service.process_object(ref, config)


def summarize(results: List[ProcessingResult]) -> Dict[str, Any]:
    """Response body for a completed batch."""
    return {"ok": True, "results": [r.to_summary() for r in results]}
