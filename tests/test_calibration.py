import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from pyEllipsoid.quaternion import Vector3D
from pyEllipsoid.fit import EllipsoidType, EllipsoidParameters, fit
from pyEllipsoid.utilities import ellipsoid_points
from pyEllipsoid.calibration import (
    InertialCalibration,
    MagnetometerCalibration,
    correction_matrix,
    calibrate_inertial_points,
    calibrate_magnetic_points,
)


def rotated_points():
    r33 = Rotation.from_euler('zyx', [20., 10., -15.], degrees=True).as_matrix()
    return ellipsoid_points((1.2, -0.7, 3.0), (5.5, 4.8, 4.0), r33, n=300)


def test_inertial_identity_defaults():
    raw = Vector3D(1.2, -0.3, 0.7)
    out = InertialCalibration().apply(raw)
    assert abs(out.x - raw.x) < 1e-12
    assert abs(out.y - raw.y) < 1e-12
    assert abs(out.z - raw.z) < 1e-12


def test_inertial_offset_scale_misalignment():
    model = InertialCalibration(
        offset=Vector3D(1.0, 1.0, 1.0),
        sensitivity=Vector3D(2.0, 3.0, 4.0),
        misalignment=np.array([
            [1.0, 0.1, 0.0],
            [0.0, 1.0, 0.2],
            [0.0, 0.0, 1.0],
        ]),
    )
    out = model.apply((2.0, 3.0, 4.0))

    # centered = [1,2,3], scaled = [2,6,12]
    # M @ scaled = [2.6, 8.4, 12]
    assert np.allclose(out.v, [2.6, 8.4, 12.0], atol=1e-12)


def test_magnetometer_identity_defaults():
    raw = Vector3D(10.0, 20.0, 30.0)
    out = MagnetometerCalibration().apply(raw)
    assert np.allclose(out.v, raw.v, atol=1e-12)


def test_magnetometer_from_arbitrary_fit_maps_onto_sphere():
    pts = rotated_points()
    params = fit(pts, EllipsoidType.ARBITRARY, eigen=True)
    model = MagnetometerCalibration.from_ellipsoid(params)

    assert np.allclose(model.hard_iron.v, [1.2, -0.7, 3.0], atol=1e-6)
    assert np.allclose(model.soft_iron, model.soft_iron.T, atol=1e-9)
    norms = [model.apply(p).norm for p in pts]
    # scaled to the smallest radius
    assert np.allclose(norms, 4.0, rtol=1e-6)


def test_magnetometer_field_strength():
    model = calibrate_magnetic_points(rotated_points(), field_strength=5.0)
    norms = [model.apply(p).norm for p in rotated_points()[::10]]
    assert np.allclose(norms, 5.0, rtol=1e-6)


def test_inertial_from_aligned_fit():
    pts = ellipsoid_points((0.02, -0.01, 0.03), (1.02, 0.98, 1.05), n=200)
    model = calibrate_inertial_points(pts, EllipsoidType.ALIGNED, reference=1.0)

    assert np.allclose(model.offset.v, [0.02, -0.01, 0.03], atol=1e-9)
    assert np.allclose(model.sensitivity.v, [1 / 1.02, 1 / 0.98, 1 / 1.05], rtol=1e-9)
    assert np.allclose(model.misalignment, np.eye(3), atol=1e-9)
    norms = [model.apply(p).norm for p in pts]
    assert np.allclose(norms, 1.0, rtol=1e-9)


def test_inertial_from_rotated_fit():
    pts = rotated_points()
    params = fit(pts, eigen=True)
    model = InertialCalibration.from_ellipsoid(params, reference=9.81)

    assert np.allclose(np.diag(model.misalignment), 1.0)
    W = correction_matrix(params, 9.81)
    p = Vector3D(pts[17])
    assert np.allclose(model.apply(p).v, W @ (pts[17] - params.center.v), atol=1e-9)
    assert abs(model.apply(p).norm - 9.81) < 1e-6


def test_calibration_needs_eigenvectors():
    params = fit(rotated_points())
    with pytest.raises(ValueError, match="eigen=True"):
        MagnetometerCalibration.from_ellipsoid(params)


def test_calibration_rejects_degenerate_fit():
    params = EllipsoidParameters(
        center=(0.0, 0.0, 0.0),
        radii=(1.0, np.nan, 2.0),
        eigenvalues=(1.0, -1.0, 0.25),
        eigenvectors=np.eye(3),
    )
    with pytest.raises(ValueError, match="degenerate"):
        InertialCalibration.from_ellipsoid(params)


def test_calibration_rejects_bad_shapes():
    with pytest.raises(ValueError):
        MagnetometerCalibration(soft_iron=np.eye(2))
    with pytest.raises(TypeError):
        InertialCalibration(offset=1.0)


@pytest.mark.parametrize("option, euler, r0", [
    (EllipsoidType.XY_EQUAL, (50., 0., 0.), (1.1, 1.1, 0.9)),
    (EllipsoidType.XZ_EQUAL, (0., 50., 0.), (1.1, 0.9, 1.1)),
])
def test_calibration_with_two_equal_radii_maps_onto_sphere(option, euler, r0):
    r33 = Rotation.from_euler('zyx', euler, degrees=True).as_matrix()
    c0 = np.array([0.05, -0.02, 0.1])
    pts = ellipsoid_points(c0, r0, r33, n=200)

    mag = calibrate_magnetic_points(pts, option)
    assert np.allclose(mag.hard_iron.v, c0, atol=1e-8)
    assert np.allclose(mag.soft_iron, mag.soft_iron.T, atol=1e-9)
    assert np.allclose([mag.apply(p).norm for p in pts], 0.9, rtol=1e-6)

    acc = calibrate_inertial_points(pts, option, reference=1.0)
    assert np.allclose([acc.apply(p).norm for p in pts], 1.0, rtol=1e-6)
