import math
import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from pyEllipsoid.eigen_order import least_rotation_angle, rotation_angle
from pyEllipsoid.quaternion import DEG2RAD
from pyEllipsoid.utilities import vector_angle2q


def test_rotation_angle():
    assert abs(rotation_angle(np.eye(3))) < 1e-12
    rz = vector_angle2q((0., 0., 1.), 90.0 * DEG2RAD).r33
    assert abs(rotation_angle(rz) - math.pi / 2) < 1e-12
    rx = vector_angle2q((1., 0., 0.), 180.0 * DEG2RAD).r33
    assert abs(rotation_angle(rx) - math.pi) < 1e-9


def test_identity_is_kept():
    evals = np.array([1.0, 2.0, 3.0])
    out_vals, out_vecs = least_rotation_angle(evals, np.eye(3))
    assert np.allclose(out_vals, evals)
    assert np.allclose(out_vecs, np.eye(3))


def test_permuted_identity_is_restored_with_pairs():
    evecs = np.eye(3)[:, [2, 0, 1]]
    evals = np.array([3.0, 1.0, 2.0])
    out_vals, out_vecs = least_rotation_angle(evals, evecs)
    assert np.allclose(out_vecs, np.eye(3))
    assert np.allclose(out_vals, [1.0, 2.0, 3.0])


@pytest.mark.parametrize("signs", [(-1., -1., 1.), (1., 1., -1.), (-1., -1., -1.)])
def test_sign_flips_are_removed(signs):
    evals = np.array([5.0, 6.0, 7.0])
    out_vals, out_vecs = least_rotation_angle(evals, np.diag(signs))
    assert np.allclose(out_vecs, np.eye(3))
    assert np.allclose(out_vals, evals)


def test_small_rotation_is_recovered():
    r33 = vector_angle2q((1., 2., 3.), 20.0 * DEG2RAD).r33
    evecs = r33[:, [1, 2, 0]] * np.array([1., -1., 1.])
    evals = np.array([0.2, 0.3, 0.1])
    out_vals, out_vecs = least_rotation_angle(evals, evecs)
    assert np.allclose(out_vecs, r33, atol=1e-12)
    assert np.allclose(out_vals, [0.1, 0.2, 0.3])


@pytest.mark.parametrize("seed", range(5))
def test_random_rotation_properties(seed):
    r33 = Rotation.random(random_state=seed).as_matrix()
    evals = np.array([1.0, 2.0, 3.0])
    out_vals, out_vecs = least_rotation_angle(evals, r33)

    assert np.linalg.det(out_vecs) > 0.0
    # no more than the corner of the cube's fundamental region
    assert rotation_angle(out_vecs) <= rotation_angle(r33) + 1e-12
    assert rotation_angle(out_vecs) < 63.0 * DEG2RAD
    # each eigenvalue keeps its eigenvector up to sign
    for k in range(3):
        j = int(np.argmin(np.abs(evals - out_vals[k])))
        assert abs(abs(np.dot(out_vecs[:, k], r33[:, j])) - 1.0) < 1e-12


def test_inputs_are_not_mutated():
    evals = np.array([3.0, 1.0, 2.0])
    evecs = np.eye(3)[:, [2, 0, 1]]
    least_rotation_angle(evals, evecs)
    assert np.allclose(evals, [3.0, 1.0, 2.0])
    assert np.allclose(evecs, np.eye(3)[:, [2, 0, 1]])


def test_non_finite_input_is_returned_unchanged():
    evals = np.array([np.nan, 1.0, 2.0])
    evecs = np.full((3, 3), np.nan)
    out_vals, out_vecs = least_rotation_angle(evals, evecs)
    assert np.isnan(out_vals[0])
    assert np.allclose(out_vals[1:], [1.0, 2.0])
    assert np.all(np.isnan(out_vecs))
