"""
Core Deformation Logic
======================

Single responsibility: Combine blendshape deltas into a deformed mesh.

    V_deformed = V_base + Σ_k c_k · ΔV_k

No clamping or normalization is applied to the coefficients.
"""

from typing import Sequence, Union
import torch

from face_reconstruct.core.blendshape_io import BlendshapeDatabase
from face_reconstruct.core.exceptions import DimensionMismatch
from face_reconstruct.utils.logging import get_logger

# Get logger for this module
logger = get_logger(__name__)


def _blend(base: torch.Tensor, deltas: torch.Tensor, coefficients: torch.Tensor) -> torch.Tensor:
    """
    Dense linear combination of delta shapes.

    Args:
        base: (V, 3) base vertex positions
        deltas: (K, V, 3) delta shapes
        coefficients: (K,) weights

    Returns:
        (V, 3) deformed vertices
    """
    return base + torch.einsum('k,kvc->vc', coefficients, deltas)


class MeshDeformer:
    """
    Blendshape mesh deformation.

    Single responsibility: Deform a base mesh from expression coefficients.
    """

    def __init__(self, database: BlendshapeDatabase, device: torch.device = None):
        """
        Initialize deformer.

        Args:
            database: Blendshape database for the active model
            device: PyTorch device (default: the database's device)
        """
        self.device = device or database.device
        self.database = database.to(self.device)

    @property
    def expression_count(self) -> int:
        return self.database.expression_count

    def deform(self, coefficients: Union[Sequence[float], torch.Tensor]) -> torch.Tensor:
        """
        Compute deformed vertices for one frame.

        Args:
            coefficients: Expression coefficients, length shape_count - 1

        Returns:
            (V, 3) deformed vertex positions

        Raises:
            DimensionMismatch: If the coefficient count is wrong
        """
        coeffs = torch.as_tensor(coefficients, dtype=torch.float32, device=self.device)

        if coeffs.dim() != 1 or coeffs.shape[0] != self.expression_count:
            raise DimensionMismatch(self.expression_count, coeffs.numel())

        with torch.no_grad():
            return _blend(self.database.base_vertices, self.database.delta_shapes, coeffs)

    def batch_deform(self, coefficients: torch.Tensor) -> torch.Tensor:
        """
        Deform several frames at once.

        Args:
            coefficients: (N, K) coefficient matrix

        Returns:
            (N, V, 3) deformed vertices
        """
        coeffs = torch.as_tensor(coefficients, dtype=torch.float32, device=self.device)

        if coeffs.dim() != 2 or coeffs.shape[1] != self.expression_count:
            raise DimensionMismatch(
                self.expression_count,
                coeffs.shape[-1] if coeffs.dim() else 0
            )

        logger.debug(f"Deforming {coeffs.shape[0]} frames")
        with torch.no_grad():
            base = self.database.base_vertices.unsqueeze(0)  # (1, V, 3)
            return base + torch.einsum('nk,kvc->nvc', coeffs, self.database.delta_shapes)


def create_deformer(database: BlendshapeDatabase, device: torch.device = None) -> MeshDeformer:
    """
    Factory function to create deformer.

    Args:
        database: Blendshape database
        device: PyTorch device

    Returns:
        MeshDeformer instance
    """
    return MeshDeformer(database, device)
