"""Command-line front-end for the inference gateway.

Loads the checkpoint once, then answers one request per positional argument,
or per line of stdin when no arguments are given.  Each response is printed
as one JSON line.

Usage::

    mnist-predict --checkpoint checkpoints/mnist_conv.json seven.png
    mnist-predict https://example.com/digit.png
    ls assets | mnist-predict --assets-dir assets
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable

import orjson
from loguru import logger

from mnist_classifier.checkpoint.store import CheckpointStore
from mnist_classifier.config import ServingConfig
from mnist_classifier.errors import NoCheckpointAvailable, PersistenceError
from mnist_classifier.inference.gateway import InferenceGateway
from mnist_classifier.models.conv_net import ConvNetClassifier


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    defaults = ServingConfig()
    parser = argparse.ArgumentParser(
        description="Classify digit images with a trained checkpoint.",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        help="Image file names (relative to --assets-dir) or http(s) URLs",
    )
    parser.add_argument(
        "--checkpoint",
        default=defaults.checkpoint_path,
        help="Checkpoint file written by mnist-train",
    )
    parser.add_argument(
        "--assets-dir",
        default=defaults.assets_dir,
        help="Directory relative image names are resolved against",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def serve(gateway: InferenceGateway, requests_in: Iterable[str]) -> int:
    """Print one JSON response per request; returns the number handled."""
    count = 0
    for value in requests_in:
        response = gateway.handle_request(value.rstrip("\n"))
        sys.stdout.write(orjson.dumps(response.model_dump()).decode() + "\n")
        sys.stdout.flush()
        count += 1
    return count


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=args.log_level)

    config = ServingConfig(checkpoint_path=args.checkpoint, assets_dir=args.assets_dir)
    model = ConvNetClassifier(image_size=config.image_size)
    try:
        gateway = InferenceGateway.from_store(
            CheckpointStore(config.checkpoint_path), model, config=config
        )
    except (NoCheckpointAvailable, PersistenceError) as e:
        logger.error(f"Cannot start inference gateway: {e}")
        sys.exit(1)

    serve(gateway, args.inputs if args.inputs else sys.stdin)


if __name__ == "__main__":
    main()
