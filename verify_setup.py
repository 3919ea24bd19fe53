#!/usr/bin/env python3
"""
Verification script to ensure all modules import and every model builds,
trains one step and round-trips through save/load.
"""

import os
import sys
import tempfile

import numpy as np


def verify_imports():
    """Verify all modules can be imported."""
    print("=" * 60)
    print("Online Neural Engine - Setup Verification")
    print("=" * 60)

    modules = [
        ("config.settings", "Configuration"),
        ("core.feature_engineering", "Feature Engineering"),
        ("ml.activations", "Activation Kernels"),
        ("ml.parameters", "Parameter Store"),
        ("ml.optimizer", "Optimizer"),
        ("ml.persistence", "Persistence Codec"),
        ("ml.model", "ML Models"),
        ("ml.trainer", "Model Trainer"),
        ("ml.inference", "Model Inference"),
    ]

    success = 0
    failed = 0

    for module_name, description in modules:
        try:
            __import__(module_name)
            print(f"[OK] {description:25} ({module_name})")
            success += 1
        except ImportError as e:
            print(f"[FAIL] {description:25} ({module_name}): {e}")
            failed += 1

    print()
    print("=" * 60)
    print(f"Results: {success} passed, {failed} failed")
    print("=" * 60)

    if failed > 0:
        print("\nSome modules failed to import. Please check dependencies:")
        print("  pip install -e .")
        return False

    print("\nRunning additional checks...")

    from config.settings import get_settings, ModelType
    from ml.model import create_model

    settings = get_settings()
    errors = settings.validate()
    if errors:
        for error in errors:
            print(f"[FAIL] Settings: {error}")
        failed += len(errors)
    else:
        print(f"[OK] Settings loaded (model: {settings.network.model_type.value})")

    with tempfile.TemporaryDirectory() as tmp:
        for model_type in ModelType:
            try:
                model = create_model(model_type)
                x = np.zeros(model.input_length)
                loss = model.train(x, np.zeros(model.output_size))

                path = os.path.join(tmp, f"{model_type.value}.bin")
                restored = create_model(model_type)
                if not (model.save(path) and restored.load(path)):
                    raise RuntimeError("save/load round trip failed")
                if restored.step_count != model.step_count:
                    raise RuntimeError("step counter not restored")

                print(
                    f"[OK] {model_type.value:12} {model.parameter_count:,} parameters, "
                    f"first loss {loss:.4f}"
                )
            except Exception as e:
                print(f"[FAIL] {model_type.value:12} {e}")
                failed += 1

    print()

    if failed == 0:
        print("[OK] All checks passed!")
        print()
        print("To train:")
        print("  python main.py train --csv prices.csv --model lstm")
        return True
    else:
        print(f"[FAIL] {failed} checks failed. Please fix issues before running.")
        return False


if __name__ == "__main__":
    success = verify_imports()
    sys.exit(0 if success else 1)
