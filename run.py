#!/usr/bin/env python3
"""
Face Reconstruction - Export Script
===================================

Dual-mode script: Run from IDE with defaults or CLI with arguments.

## Reconstruction

    V = V_base + Σ_k c_k · ΔV_k          (blendshape region)
    V = (V_ref + offset) * scale         (static region, per-model calibration)
    V_out = R(q) · (x, y, -z)            (head pose)

The reference OBJ is rewritten line by line: vertex lines take the posed
coordinates, face lines are re-wound, everything else is copied.

## Usage

IDE Mode:
    1. Edit DEFAULT_CONFIG below
    2. Run: python run.py

CLI Mode:
    python run.py --model Man --frames frame.json --model-dir model/
"""

import argparse
import sys
from pathlib import Path

from face_reconstruct.core.exceptions import FaceReconstructError
from face_reconstruct.pipeline import ExportConfig, run_export_pipeline
from face_reconstruct.tracking import RecordedEngine
from face_reconstruct.utils.logging import PACKAGE_LOGGER, setup_logger

# ============================================================================
# IDE MODE CONFIGURATION
# ============================================================================

DEFAULT_CONFIG = {
    'model': 'shape_0',             # 'shape_0', 'Man' or 'OldMan'
    'frames': Path('frame.json'),   # Recorded tracker output
    'model_dir': Path('model'),
    'output_dir': None,             # None: write next to the model
    'attempts': 5,
    'log_level': 'INFO',
}


def parse_args() -> dict:
    parser = argparse.ArgumentParser(description="Export a reconstructed face mesh")
    parser.add_argument('--model', default=DEFAULT_CONFIG['model'])
    parser.add_argument('--frames', type=Path, default=DEFAULT_CONFIG['frames'])
    parser.add_argument('--model-dir', type=Path, default=DEFAULT_CONFIG['model_dir'])
    parser.add_argument('--output-dir', type=Path, default=DEFAULT_CONFIG['output_dir'])
    parser.add_argument('--attempts', type=int, default=DEFAULT_CONFIG['attempts'])
    parser.add_argument('--log-level', default=DEFAULT_CONFIG['log_level'])
    return vars(parser.parse_args())


def main() -> int:
    settings = parse_args() if len(sys.argv) > 1 else DEFAULT_CONFIG
    setup_logger(PACKAGE_LOGGER, log_level=settings['log_level'])

    try:
        config = ExportConfig(
            model_name=settings['model'],
            model_dir=settings['model_dir'],
            output_dir=settings['output_dir'],
            max_detection_attempts=settings['attempts'],
            log_level=settings['log_level'],
        )
        engine = RecordedEngine.from_json(settings['frames'])
        run_export_pipeline(config, engine)
    except FaceReconstructError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
