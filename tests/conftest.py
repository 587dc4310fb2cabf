"""
Shared fixtures: synthetic blendshape databases, reference meshes and recordings.
"""

import io
import json
import logging
from pathlib import Path

import pytest
import torch

from face_reconstruct.core.blendshape_io import BlendshapeDatabase, save_blendshapes, write_blendshapes
from face_reconstruct.tracking.base import TrackedFrame

IDENTITY_QUATERNION = (0.0, 0.0, 0.0, 1.0)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo handler setup done by the CLI so caplog sees package records."""
    yield
    for name in ("face_reconstruct", "export_session"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True


@pytest.fixture
def small_database():
    """shape_count=3, vertex_count=2 database with easy-to-check values."""
    return BlendshapeDatabase(
        version=3.0,
        base_vertices=torch.tensor([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]),
        delta_shapes=torch.tensor([
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
            [[0.0, 0.0, 2.0], [-1.0, -1.0, -1.0]],
        ]),
    )


@pytest.fixture
def database_bytes(small_database):
    buffer = io.BytesIO()
    write_blendshapes(small_database, buffer)
    return buffer.getvalue()


def make_database(expression_count: int, vertex_count: int, seed: int = 0) -> BlendshapeDatabase:
    generator = torch.Generator().manual_seed(seed)
    return BlendshapeDatabase(
        version=1.0,
        base_vertices=torch.randn(vertex_count, 3, generator=generator),
        delta_shapes=torch.randn(expression_count, vertex_count, 3, generator=generator),
    )


REFERENCE_OBJ = (
    "# reference head\n"
    "mtllib head.mtl\n"
    "v 0.0 0.0 0.0\n"
    "v 0.0 0.0 0.0\n"
    "vn 0.0 0.0 1.0\n"
    "vt 0.5 0.5\n"
    "v 10.0 20.0 30.0\n"
    "g body\n"
    "\n"
    "f 1 2 3\n"
    "f 1/1/1 2/1/1 3/1/1 1/1/1\n"
    "usemtl skin\n"
)


@pytest.fixture
def model_dir(tmp_path):
    """Model directory holding a 16-expression database and a reference OBJ."""
    directory = tmp_path / "model"
    directory.mkdir()

    db = make_database(expression_count=16, vertex_count=2)
    for name in ("shape_0", "Man"):
        save_blendshapes(db, directory / f"{name}.bs")
        (directory / f"{name}.obj").write_text(REFERENCE_OBJ, encoding="utf-8")

    return directory


def make_frame(expression_count: int = 16, **overrides) -> TrackedFrame:
    values = dict(
        coefficients=tuple(0.0 for _ in range(expression_count)),
        rotation=IDENTITY_QUATERNION,
        stress=0.0,
        tracked=True,
        pupil=(0.0, 0.0),
    )
    values.update(overrides)
    return TrackedFrame(**values)


@pytest.fixture
def recording(tmp_path) -> Path:
    path = tmp_path / "frame.json"
    path.write_text(json.dumps({
        "frames": [{
            "expression": [0.0] * 16,
            "rotation": list(IDENTITY_QUATERNION),
            "stress": 0.5,
            "tracked": True,
            "pupil_pos": [0.0, 0.0],
        }]
    }), encoding="utf-8")
    return path
