"""CLI entry point: evaluate a price series from a JSON file.

Usage:
    python -m signal_engine prices.json
    python -m signal_engine prices.json --symbol AAPL --model lstm.json
    python -m signal_engine prices.json --config engine.yaml --pretty

The prices file holds either a list of numbers (timestamps are
synthesized one minute apart) or a list of sample objects with
timestamp, price and optional volume/high/low. Each model file holds one
prediction object or a list of them.
"""

import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pydantic

from signal_engine.errors import EngineError
from signal_engine.models import Sample
from signal_engine.pipeline import SignalPipeline
from signal_engine.serialization import dumps, loads
from signal_engine.settings import get_settings, load_engine_config

logger = logging.getLogger("signal_engine")

_SYNTHETIC_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute indicators and a hybrid signal for a price series",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m signal_engine prices.json
  python -m signal_engine prices.json --symbol AAPL --model lstm.json --model ppo.json
        """,
    )
    parser.add_argument("prices", type=Path, help="JSON file with the price series")
    parser.add_argument("--symbol", default="UNKNOWN", help="Instrument symbol")
    parser.add_argument(
        "--model",
        type=Path,
        action="append",
        default=[],
        help="JSON file with model prediction(s); may be repeated",
    )
    parser.add_argument("--config", type=Path, default=None, help="engine.yaml path")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    parser.add_argument("--log-level", default=None, help="Override log level")
    return parser.parse_args(argv)


def read_samples(path: Path) -> list[Sample]:
    """Load samples from a JSON file (numbers or sample objects)."""
    raw = loads(path.read_bytes())
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list")
    samples = []
    for i, item in enumerate(raw):
        if isinstance(item, (int, float)):
            samples.append(
                Sample(timestamp=_SYNTHETIC_START + timedelta(minutes=i), price=item)
            )
        else:
            samples.append(Sample.model_validate(item))
    return samples


def read_predictions(paths: list[Path]) -> list[dict]:
    predictions = []
    for path in paths:
        raw = loads(path.read_bytes())
        predictions.extend(raw if isinstance(raw, list) else [raw])
    return predictions


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_engine_config(args.config)
        samples = read_samples(args.prices)
        predictions = read_predictions(args.model)
    except (OSError, ValueError, pydantic.ValidationError) as e:
        logger.error("Failed to load input: %s", e)
        return 2

    pipeline = SignalPipeline(config, capacity=settings.buffer_capacity)
    accepted = pipeline.buffer(args.symbol).extend(samples)
    logger.info("Loaded %d samples for %s (%d accepted)", len(samples), args.symbol, accepted)

    try:
        evaluation = pipeline.evaluate(args.symbol, predictions)
    except EngineError as e:
        logger.error("Evaluation failed: %s", e)
        return 1

    print(dumps(evaluation, indent=args.pretty))
    return 0


if __name__ == "__main__":
    sys.exit(main())
