"""
Fee model artifact exporter.

Converts the JSON model descriptions written by training
(``scripts/fee_models/<name>.json``) into the binary artifacts the estimator
embeds (``src/blockfee/models/<name>.bin``). Run it after retraining, then run
the test suite: the artifact tests fail until both files are re-exported.

Usage:
    python scripts/export_fee_models.py            # export low and high
    python scripts/export_fee_models.py --check    # verify artifacts are current
"""

import argparse
import json
import os
import sys

SCRIPT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(SCRIPT_ROOT, 'src'))

from blockfee.core.model_data import ModelData

DESCRIPTIONS_DIR = os.path.join(SCRIPT_ROOT, 'scripts', 'fee_models')
ARTIFACTS_DIR = os.path.join(SCRIPT_ROOT, 'src', 'blockfee', 'models')
MODEL_NAMES = ('low', 'high')


def export_model(name: str) -> bytes:
    with open(os.path.join(DESCRIPTIONS_DIR, f"{name}.json"), encoding="utf-8") as handle:
        description = json.load(handle)
    model = ModelData.from_description(description)
    # Reload to prove the artifact parses before it is written
    encoded = model.to_bytes()
    ModelData.from_bytes(encoded)
    return encoded


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export fee model artifacts")
    parser.add_argument('--check', action='store_true', help="only verify the artifacts are up to date")
    parser.add_argument('models', nargs='*', default=list(MODEL_NAMES), help="model names to export")
    args = parser.parse_args(argv)

    stale = []
    for name in args.models:
        encoded = export_model(name)
        path = os.path.join(ARTIFACTS_DIR, f"{name}.bin")
        if args.check:
            with open(path, 'rb') as handle:
                if handle.read() != encoded:
                    stale.append(name)
            continue
        with open(path, 'wb') as handle:
            handle.write(encoded)
        print(f"Wrote {path} ({len(encoded)} bytes)")

    if stale:
        print(f"Stale artifacts: {', '.join(stale)}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
