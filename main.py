"""
Online Neural Engine - command line host

Trains one of the hand-written networks on a close-price series and
predicts the next price delta:

    python main.py train --csv prices.csv --model lstm --epochs 10
    python main.py predict --csv prices.csv --model lstm

The CSV needs a header row; closes are read from --column (default: close).
The fitted scaler is stored next to the model weights.
"""

from __future__ import annotations

import os
import sys
import csv
import json
import argparse
from typing import List, Optional

# Setup logging first
from utils.logging_config import init_logging, get_logger

from config.settings import get_settings, ModelType
from core.feature_engineering import FeatureEngine, FeatureScaler
from ml.model import create_model
from ml.trainer import ModelTrainer
from ml.inference import ModelInference
from utils.exceptions import EngineError, ValidationError


logger = get_logger(__name__)


def read_closes(path: str, column: str = "close") -> List[float]:
    """
    Read a close-price column from a CSV file.

    Raises:
        ValidationError: Missing column or non-numeric value
    """
    with open(path, "r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None or column not in reader.fieldnames:
            raise ValidationError(f"Column {column!r} not found in {path}", parameter="column")

        closes = []
        for line_no, row in enumerate(reader, start=2):
            try:
                closes.append(float(row[column]))
            except (TypeError, ValueError):
                raise ValidationError(
                    f"Non-numeric close at line {line_no}",
                    parameter=column,
                    value=row[column]
                )
    return closes


def scaler_path() -> str:
    training = get_settings().training
    return os.path.join(training.model_save_path, training.scaler_filename)


def run_train(args: argparse.Namespace) -> int:
    settings = get_settings()
    closes = read_closes(args.csv, args.column)

    engine = FeatureEngine(settings.features)
    engine.fit(closes)
    samples = engine.build_samples(closes)

    model = create_model(ModelType(args.model) if args.model else None)
    trainer = ModelTrainer(model, settings.training, seed=settings.network.seed)

    if args.resume:
        trainer.load_checkpoint()

    metrics = trainer.train(samples, epochs=args.epochs)

    if not settings.training.save_on_improvement and not trainer.save_checkpoint():
        return 1
    if not engine.scaler.save(scaler_path()):
        return 1

    summary = trainer.get_training_stats()
    summary["model"] = model.describe()
    summary["epochs_run"] = len(metrics)
    print(json.dumps(summary, indent=2), flush=True)
    return 0


def run_predict(args: argparse.Namespace) -> int:
    settings = get_settings()
    closes = read_closes(args.csv, args.column)

    scaler = FeatureScaler.load(scaler_path())
    if scaler is None:
        logger.error("No fitted scaler found; run 'train' first")
        return 1

    engine = FeatureEngine(settings.features, scaler=scaler)
    model = create_model(ModelType(args.model) if args.model else None)

    inference = ModelInference(model, settings.training)
    if not inference.load_model():
        logger.error("No trained model found; run 'train' first")
        return 1

    prediction = inference.predict(engine.build_input(closes))
    result = {
        "model": model.model_type.value,
        "step_count": model.step_count,
        "scaled_prediction": prediction.tolist(),
        "predicted_delta": engine.decode_prediction(prediction),
        "last_close": closes[-1],
    }
    result["predicted_close"] = result["last_close"] + result["predicted_delta"]
    print(json.dumps(result, indent=2), flush=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Online Neural Engine")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("train", "Train on a close-price CSV"),
                            ("predict", "Predict the next price delta")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--csv", type=str, required=True, help="CSV file with a header row")
        sub.add_argument("--column", type=str, default="close", help="Close-price column name")
        sub.add_argument(
            "--model",
            type=str,
            default=None,
            choices=[t.value for t in ModelType],
            help="Architecture (defaults to ML_MODEL_TYPE)"
        )

    train = subparsers.choices["train"]
    train.add_argument("--epochs", type=int, default=None, help="Passes over the samples")
    train.add_argument("--resume", action="store_true", help="Continue from the saved checkpoint")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Initialize logging first (before settings to set LOG_LEVEL)
    os.environ["LOG_LEVEL"] = args.log_level
    init_logging(get_settings().logging.log_file)

    errors = get_settings().validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return 1

    try:
        if args.command == "train":
            return run_train(args)
        return run_predict(args)
    except (EngineError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
