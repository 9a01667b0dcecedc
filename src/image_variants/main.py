"""Main module for the image variants CLI."""

import sys
import json
import argparse
from typing import Any, Dict

from .core import ImageVariantsError, ObjectRef, ResizeConfig, get_logger
from .core.factories import ProcessingPipelineFactory
from .core.logging_config import set_debug
from .core.services import summarize
from .handler import process_event

VERSION = "0.1.0"


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dest-prefix", default=None, help="Destination prefix (default: DEST_PREFIX or 'resized/')"
    )
    parser.add_argument(
        "--dest-bucket", default=None, help="Destination bucket (default: the source bucket)"
    )
    parser.add_argument(
        "--allowed-sections",
        default=None,
        help="Comma separated list of top-level sections to process (default: all)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")


def build_config(args: argparse.Namespace) -> ResizeConfig:
    """Environment configuration with command-line overrides applied."""
    overrides: Dict[str, Any] = {}
    if args.dest_prefix is not None:
        overrides["dest_prefix"] = args.dest_prefix
    if args.dest_bucket is not None:
        overrides["dest_bucket"] = args.dest_bucket
    if args.allowed_sections is not None:
        overrides["allowed_sections"] = args.allowed_sections.split(",")
    if args.debug:
        overrides["debug"] = True

    config = ResizeConfig.from_env()
    if not overrides:
        return config
    return ResizeConfig(**{**config.model_dump(), **overrides})


def _read_event(path: str) -> Dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def main() -> None:
    """
    Entry point for the ``image-variants`` command.

    Commands:
        process  Run a queue batch event (JSON file, or '-' for stdin)
        object   Resize a single object by bucket and key
        version  Show version information
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="image-variants",
        description="Image Variants - resize S3 images into a width x format matrix",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a queue batch saved to a file
  image-variants process --event batch.json

  # Resize one object, only for the 'products' section
  image-variants object --bucket media --key products/shoe.png \\
                        --allowed-sections products

  # Show version
  image-variants version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    process_parser = subparsers.add_parser(
        "process", help="Process a queue batch event"
    )
    process_parser.add_argument(
        "--event", required=True, help="Path to the event JSON, or '-' for stdin"
    )
    _add_config_arguments(process_parser)

    object_parser = subparsers.add_parser(
        "object", help="Resize a single object"
    )
    object_parser.add_argument("--bucket", required=True, help="Source S3 bucket")
    object_parser.add_argument("--key", required=True, help="Source object key (not URL encoded)")
    _add_config_arguments(object_parser)

    subparsers.add_parser("version", help="Show version information")

    args: argparse.Namespace = parser.parse_args()

    if args.command in ("process", "object"):
        logger = get_logger("cli")
        try:
            config = build_config(args)
            if config.debug:
                set_debug(True)

            if args.command == "process":
                response = process_event(_read_event(args.event), config)
                print(response["body"])
            else:
                pipeline = ProcessingPipelineFactory.create_pipeline(debug=config.debug)
                result = pipeline.process_object(
                    ObjectRef(bucket=args.bucket, key=args.key), config
                )
                print(json.dumps(summarize([result])))
        except KeyboardInterrupt:
            logger.warning("Processing interrupted by user.")
        except (ImageVariantsError, OSError, ValueError) as e:
            logger.error(f"Processing failed: {e}", exc_info=True)
            sys.exit(1)

    elif args.command == "version":
        print("Image Variants CLI")
        print(f"Version {VERSION}")
        print("S3 image resizing into original-format and WebP variants")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
