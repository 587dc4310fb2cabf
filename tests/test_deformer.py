"""
Unit tests for blendshape deformation.
"""

import pytest
import torch

from face_reconstruct.core.deformer import create_deformer
from face_reconstruct.core.exceptions import DimensionMismatch

from conftest import make_database


def test_weighted_sum_matches_definition(small_database):
    deformer = create_deformer(small_database)

    deformed = deformer.deform([0.5, 2.0])

    expected = torch.tensor([
        [1.0 + 0.5, 2.0, 3.0 + 4.0],
        [4.0 - 2.0, 5.0 + 0.5 - 2.0, 6.0 - 2.0],
    ])
    assert torch.allclose(deformed, expected)


def test_random_database_matches_explicit_loop():
    db = make_database(expression_count=7, vertex_count=20, seed=3)
    coefficients = torch.linspace(-0.2, 1.5, 7)

    deformed = create_deformer(db).deform(coefficients)

    expected = db.base_vertices.clone()
    for k in range(7):
        expected += coefficients[k] * db.delta_shapes[k]
    assert torch.allclose(deformed, expected, atol=1e-5)


def test_zero_coefficients_reproduce_base(small_database):
    deformed = create_deformer(small_database).deform(torch.zeros(2))

    assert torch.equal(deformed, small_database.base_vertices)


def test_coefficients_are_not_clamped(small_database):
    """Values far outside the nominal range are applied as given."""
    deformed = create_deformer(small_database).deform([10.0, 0.0])

    assert deformed[0, 0].item() == pytest.approx(11.0)


@pytest.mark.parametrize("length", [0, 1, 3])
def test_wrong_length_raises_dimension_mismatch(small_database, length):
    deformer = create_deformer(small_database)

    with pytest.raises(DimensionMismatch) as excinfo:
        deformer.deform(torch.zeros(length))

    assert excinfo.value.expected == 2
    assert excinfo.value.actual == length


def test_batch_deform_matches_single_frames(small_database):
    deformer = create_deformer(small_database)
    batch = torch.tensor([[0.0, 0.0], [1.0, -1.0], [0.25, 0.75]])

    result = deformer.batch_deform(batch)

    assert result.shape == (3, 2, 3)
    for i in range(3):
        assert torch.allclose(result[i], deformer.deform(batch[i]))
