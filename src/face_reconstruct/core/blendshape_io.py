"""
Blendshape Database I/O
=======================

Single responsibility: Load and save binary blendshape databases.

Layout (little-endian, no padding, no per-group length prefix):

    float32  version
    int32    shape_count      (base + expression shapes)
    int32    vertex_count
    float32  base[vertex_count][3]
    float32  delta[shape_count - 1][vertex_count][3]
"""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union
import numpy as np
import torch

from face_reconstruct.core.exceptions import FormatError, ResourceUnavailable
from face_reconstruct.utils.logging import get_logger

logger = get_logger(__name__)

_FLOAT = np.dtype('<f4')
_INT = np.dtype('<i4')
_HEADER = np.dtype([('version', _FLOAT), ('shape_count', _INT), ('vertex_count', _INT)])


@dataclass
class BlendshapeDatabase:
    """
    Base mesh plus expression delta shapes for one model.

    Attributes:
        version: Format tag (read, otherwise unused)
        base_vertices: (V, 3) base vertex positions
        delta_shapes: (K, V, 3) per-expression vertex offsets, K = shape_count - 1
    """

    version: float
    base_vertices: torch.Tensor
    delta_shapes: torch.Tensor

    def __post_init__(self):
        if self.base_vertices.dim() != 2 or self.base_vertices.shape[1] != 3:
            raise FormatError(f"Base vertices must be (V, 3), got {tuple(self.base_vertices.shape)}")
        if self.delta_shapes.dim() != 3 or self.delta_shapes.shape[1:] != self.base_vertices.shape:
            raise FormatError(
                f"Delta shapes must be (K, {self.vertex_count}, 3), "
                f"got {tuple(self.delta_shapes.shape)}"
            )

    @property
    def vertex_count(self) -> int:
        return self.base_vertices.shape[0]

    @property
    def shape_count(self) -> int:
        """Number of shapes including the base."""
        return self.delta_shapes.shape[0] + 1

    @property
    def expression_count(self) -> int:
        """Length of the coefficient vector this database consumes."""
        return self.delta_shapes.shape[0]

    @property
    def device(self) -> torch.device:
        return self.base_vertices.device

    def to(self, device: torch.device) -> 'BlendshapeDatabase':
        """Return a copy of the database on another device."""
        return BlendshapeDatabase(
            version=self.version,
            base_vertices=self.base_vertices.to(device),
            delta_shapes=self.delta_shapes.to(device),
        )


def _read_exact(stream: BinaryIO, nbytes: int, section: str) -> bytes:
    data = stream.read(nbytes)
    if len(data) != nbytes:
        raise FormatError(
            f"Truncated {section}: expected {nbytes:,} bytes, got {len(data):,}"
        )
    return data


def parse_blendshapes(stream: BinaryIO) -> BlendshapeDatabase:
    """
    Parse a blendshape database from a binary stream.

    Args:
        stream: Readable binary stream positioned at the header

    Returns:
        BlendshapeDatabase with float32 CPU tensors

    Raises:
        FormatError: If the stream ends early or the header is invalid
    """
    header = np.frombuffer(_read_exact(stream, _HEADER.itemsize, "header"), dtype=_HEADER)[0]
    version = float(header['version'])
    shape_count = int(header['shape_count'])
    vertex_count = int(header['vertex_count'])

    if shape_count < 1:
        raise FormatError(f"Invalid shape count: {shape_count} (must be >= 1)")
    if vertex_count < 0:
        raise FormatError(f"Invalid vertex count: {vertex_count} (must be >= 0)")

    group_bytes = vertex_count * 3 * _FLOAT.itemsize

    base = np.frombuffer(
        _read_exact(stream, group_bytes, "base vertices"), dtype=_FLOAT
    ).reshape(vertex_count, 3)

    deltas = np.empty((shape_count - 1, vertex_count, 3), dtype=np.float32)
    for k in range(shape_count - 1):
        deltas[k] = np.frombuffer(
            _read_exact(stream, group_bytes, f"delta shape {k + 1}/{shape_count - 1}"),
            dtype=_FLOAT
        ).reshape(vertex_count, 3)

    trailing = stream.read(1)
    if trailing:
        logger.debug("Ignoring trailing bytes after last delta shape")

    logger.debug(
        f"Parsed blendshape database v{version:g}: "
        f"{shape_count} shapes, {vertex_count:,} vertices"
    )

    return BlendshapeDatabase(
        version=version,
        base_vertices=torch.from_numpy(base.astype(np.float32)),
        delta_shapes=torch.from_numpy(deltas),
    )


def load_blendshapes(filepath: Union[str, Path]) -> BlendshapeDatabase:
    """
    Load a blendshape database from file.

    Args:
        filepath: Path to .bs file

    Returns:
        BlendshapeDatabase

    Raises:
        ResourceUnavailable: If the file cannot be opened
        FormatError: If the contents are malformed
    """
    filepath = Path(filepath)

    try:
        f = open(filepath, 'rb')
    except OSError as e:
        raise ResourceUnavailable(f"Cannot open blendshape database {filepath}: {e}") from e

    with f:
        db = parse_blendshapes(f)

    logger.info(
        f"Loaded {filepath.name}: {db.expression_count} expressions, "
        f"{db.vertex_count:,} vertices"
    )
    return db


def write_blendshapes(db: BlendshapeDatabase, stream: BinaryIO) -> None:
    """
    Serialize a blendshape database using the binary layout above.

    Args:
        db: Database to write
        stream: Writable binary stream
    """
    header = np.array(
        [(db.version, db.shape_count, db.vertex_count)], dtype=_HEADER
    )
    stream.write(header.tobytes())
    stream.write(db.base_vertices.detach().cpu().numpy().astype(_FLOAT).tobytes())
    stream.write(db.delta_shapes.detach().cpu().numpy().astype(_FLOAT).tobytes())


def save_blendshapes(db: BlendshapeDatabase, filepath: Path) -> None:
    """
    Save a blendshape database to file.

    Args:
        db: Database to save
        filepath: Output path
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, 'wb') as f:
        write_blendshapes(db, f)
