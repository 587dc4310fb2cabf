"""
Mesh I/O Operations
===================

Single responsibility: Rewrite a reference OBJ mesh with posed vertices.

The reference mesh is streamed line by line and every input line produces
exactly one output line:

- ``v`` lines are replaced by posed coordinates. The vertex's ordinal
  position decides whether it comes from the blendshape region or is a
  static vertex that gets calibrated and rotated.
- ``f`` lines have their vertex references reordered by a winding policy.
- Everything else (``vn``, ``vt``, groups, materials, comments) is copied
  verbatim.
"""

import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple
import torch

from face_reconstruct.core.exceptions import FormatError, ResourceUnavailable
from face_reconstruct.core.transform import RigidTransform
from face_reconstruct.utils.logging import get_logger

logger = get_logger(__name__)

VERTEX_MARKER = 'v'
FACE_MARKER = 'f'

# Model whose triangles are already wound the right way
REFERENCE_MODEL = 'shape_0'


class LineKind(Enum):
    VERTEX = "vertex"
    FACE = "face"
    PASSTHROUGH = "passthrough"


def classify_line(line: str) -> LineKind:
    """Classify an OBJ line by its first token."""
    tokens = line.split(maxsplit=1)
    if not tokens:
        return LineKind.PASSTHROUGH
    if tokens[0] == VERTEX_MARKER:
        return LineKind.VERTEX
    if tokens[0] == FACE_MARKER:
        return LineKind.FACE
    return LineKind.PASSTHROUGH


def _split_terminator(line: str) -> Tuple[str, str]:
    body = line.rstrip('\r\n')
    return body, line[len(body):]


@dataclass(frozen=True)
class WindingRule:
    """
    How faces with a given number of vertex references are re-wound.

    Attributes:
        reverse: Reverse the reference order
        keep_for: Models exempt from reversal
    """

    reverse: bool = True
    keep_for: FrozenSet[str] = frozenset()

    def applies_reversal(self, model_name: str) -> bool:
        return self.reverse and model_name not in self.keep_for


@dataclass
class WindingPolicy:
    """
    Face winding rules keyed by vertex reference count.

    Counts without a rule are unhandled: the face is re-emitted unchanged
    with a warning, or rejected when ``strict`` is set.
    """

    rules: Dict[int, WindingRule] = field(default_factory=dict)
    strict: bool = False

    @classmethod
    def for_reference_model(cls, reference_model: str = REFERENCE_MODEL, strict: bool = False) -> 'WindingPolicy':
        """Quads always flip; triangles flip except for the reference model."""
        return cls(
            rules={
                3: WindingRule(reverse=True, keep_for=frozenset({reference_model})),
                4: WindingRule(reverse=True),
            },
            strict=strict,
        )

    def orient(self, references: Sequence[str], model_name: str) -> Optional[List[str]]:
        """
        Reorder a face's vertex references.

        Args:
            references: Vertex reference tokens (e.g. '3', '3/1', '3/1/2')
            model_name: Active model

        Returns:
            Reordered references, or None if no rule covers this count

        Raises:
            FormatError: If the count is unhandled and the policy is strict
        """
        rule = self.rules.get(len(references))
        if rule is None:
            if self.strict:
                raise FormatError(
                    f"No winding rule for faces with {len(references)} vertex references"
                )
            return None

        if rule.applies_reversal(model_name):
            return list(reversed(references))
        return list(references)


@dataclass
class RewriteStats:
    """Counts collected while rewriting a mesh."""

    lines: int = 0
    deformable_vertices: int = 0
    static_vertices: int = 0
    faces: int = 0
    unhandled_faces: int = 0


class MeshRewriter:
    """
    Streams a reference mesh into a posed, deformed mesh.

    Single responsibility: Map reference lines to output lines.
    """

    def __init__(
        self,
        deformed_vertices: torch.Tensor,
        transform: RigidTransform,
        model_name: str,
        policy: Optional[WindingPolicy] = None
    ):
        """
        Initialize rewriter.

        Args:
            deformed_vertices: (V, 3) blendshape-region vertices, not yet rotated
            transform: Frame pose and static calibration
            model_name: Active model (selects triangle winding)
            policy: Face winding policy (default: reference-model policy)
        """
        self.transform = transform
        self.model_name = model_name
        self.policy = policy or WindingPolicy.for_reference_model()
        self.posed_vertices = transform.deformable(deformed_vertices.detach().cpu()).tolist()
        self.stats = RewriteStats()

    @property
    def vertex_count(self) -> int:
        return len(self.posed_vertices)

    @staticmethod
    def format_vertex(x: float, y: float, z: float) -> str:
        return "%s %f %f %f" % (VERTEX_MARKER, x, y, z)

    def _static_vertex(self, body: str, lineno: int) -> Tuple[float, float, float]:
        tokens = body.split()[1:4]
        try:
            point = [float(t) for t in tokens]
        except ValueError as e:
            raise FormatError(f"Line {lineno}: invalid vertex coordinates: {body!r}") from e
        if len(point) != 3:
            raise FormatError(f"Line {lineno}: vertex needs 3 coordinates: {body!r}")

        posed = self.transform.static(torch.tensor(point, dtype=torch.float32))
        return tuple(posed.tolist())

    def rewrite_line(self, line: str, lineno: int, vertex_index: int) -> str:
        """
        Rewrite one line.

        Args:
            line: Input line including its terminator
            lineno: 1-based line number (for error messages)
            vertex_index: Ordinal of this line among vertex lines

        Returns:
            Output line with the input's terminator
        """
        kind = classify_line(line)
        if kind is LineKind.PASSTHROUGH:
            return line

        body, terminator = _split_terminator(line)

        if kind is LineKind.VERTEX:
            if vertex_index < self.vertex_count:
                self.stats.deformable_vertices += 1
                x, y, z = self.posed_vertices[vertex_index]
            else:
                self.stats.static_vertices += 1
                x, y, z = self._static_vertex(body, lineno)
            return self.format_vertex(x, y, z) + terminator

        references = body.split()[1:]
        self.stats.faces += 1
        oriented = self.policy.orient(references, self.model_name)
        if oriented is None:
            self.stats.unhandled_faces += 1
            logger.warning(
                f"Line {lineno}: no winding rule for {len(references)}-vertex face, "
                f"kept as is"
            )
            return line

        return " ".join([FACE_MARKER] + oriented) + terminator

    def rewrite(self, lines: Iterable[str]) -> Iterator[str]:
        """
        Lazily rewrite a sequence of lines.

        Args:
            lines: Reference mesh lines, terminators included

        Yields:
            Output lines, one per input line, in order. Statistics restart
            with each call.
        """
        self.stats = RewriteStats()
        vertex_index = 0
        for lineno, line in enumerate(lines, 1):
            self.stats.lines += 1
            is_vertex = classify_line(line) is LineKind.VERTEX
            yield self.rewrite_line(line, lineno, vertex_index)
            if is_vertex:
                vertex_index += 1

        if vertex_index < self.vertex_count:
            logger.warning(
                f"Reference mesh has {vertex_index:,} vertices, "
                f"fewer than the {self.vertex_count:,} in the blendshape database"
            )


def export_mesh(
    reference_path: Path,
    output_path: Path,
    rewriter: MeshRewriter
) -> RewriteStats:
    """
    Rewrite a reference OBJ file into a new output file.

    The output is written to a temporary file next to ``output_path`` and
    moved into place only on success. Bytes that are not valid UTF-8 are
    copied through unchanged.

    Args:
        reference_path: Reference mesh
        output_path: Destination mesh
        rewriter: Configured rewriter for this frame

    Returns:
        RewriteStats for the export

    Raises:
        ResourceUnavailable: If the reference mesh cannot be opened
        FormatError: If the reference mesh is malformed
    """
    reference_path = Path(reference_path)
    output_path = Path(output_path)

    try:
        src = open(reference_path, 'r', encoding='utf-8', errors='surrogateescape', newline='')
    except OSError as e:
        raise ResourceUnavailable(f"Cannot open reference mesh {reference_path}: {e}") from e

    with src:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', errors='surrogateescape', newline='') as dst:
                dst.writelines(rewriter.rewrite(src))
            os.replace(tmp_name, output_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    stats = rewriter.stats
    logger.debug(
        f"Wrote {output_path.name}: {stats.lines:,} lines, "
        f"{stats.deformable_vertices:,} deformable + {stats.static_vertices:,} static vertices, "
        f"{stats.faces:,} faces"
    )
    return stats
