"""
Sensor calibration models built from an ellipsoid fit.

The raw output of a 3-axis sensor rotated through all orientations traces
an ellipsoid. The fit gives center c, radii r and principal axes E
(columns). The correction that maps the ellipsoid onto a sphere of
radius s is

    W = E @ diag(s / r) @ E.T

Magnetometer calibration:
    calibrated = soft_iron @ (raw - hard_iron),  soft_iron = W

Inertial calibration (accelerometer):
    calibrated = misalignment @ (diag(sensitivity) @ (raw - offset))
    sensitivity = diag(W), misalignment = W @ diag(1 / sensitivity)
"""

from dataclasses import dataclass, field
from copy import copy
import numpy as np

from pyEllipsoid.quaternion import Vector3D
from pyEllipsoid.fit import EllipsoidParameters, EllipsoidType, fit
from pyEllipsoid.utilities import to_vector3d, to_matrix3


def correction_matrix(params: EllipsoidParameters, scale: float) -> np.ndarray:
    """Matrix mapping the centered ellipsoid onto a sphere of radius scale."""
    if params.eigenvectors is None:
        raise ValueError("Ellipsoid parameters carry no eigenvectors, fit with eigen=True")
    if params.is_degenerate:
        raise ValueError(f"Cannot calibrate from a degenerate ellipsoid, radii {params.radii}")
    evecs = params.eigenvectors
    return evecs @ np.diag(scale / params.radii.v) @ evecs.T


@dataclass
class InertialCalibration:
    """
    Calibration model for accelerometer or gyroscope.

    Defaults are identity calibration:
    - offset = (0, 0, 0)
    - sensitivity = (1, 1, 1)
    - misalignment = I
    """

    offset: Vector3D = field(default_factory=lambda: Vector3D(0.0, 0.0, 0.0))
    sensitivity: Vector3D = field(default_factory=lambda: Vector3D(1.0, 1.0, 1.0))
    misalignment: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=float))

    def __post_init__(self):
        self.offset = to_vector3d(self.offset)
        self.sensitivity = to_vector3d(self.sensitivity)
        self.misalignment = to_matrix3(self.misalignment)

    @classmethod
    def from_ellipsoid(cls, params: EllipsoidParameters, reference: float = 1.0) -> "InertialCalibration":
        """
        Calibration that maps the fitted ellipsoid onto a sphere of radius
        reference, e.g. 1 g for an accelerometer.
        """
        W = correction_matrix(params, reference)
        sensitivity = np.diag(W).copy()
        return cls(
            offset=copy(params.center),
            sensitivity=Vector3D(sensitivity),
            misalignment=W / sensitivity,
        )

    def apply(self, raw) -> Vector3D:
        raw_v = to_vector3d(raw)
        centered = raw_v - self.offset
        scaled = centered * self.sensitivity
        calibrated = np.dot(self.misalignment, scaled.v)
        return Vector3D(calibrated)


@dataclass
class MagnetometerCalibration:
    """
    Calibration model for magnetometer.

    Defaults are identity calibration:
    - hard_iron = (0, 0, 0)
    - soft_iron = I
    """

    hard_iron: Vector3D = field(default_factory=lambda: Vector3D(0.0, 0.0, 0.0))
    soft_iron: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=float))

    def __post_init__(self):
        self.hard_iron = to_vector3d(self.hard_iron)
        self.soft_iron = to_matrix3(self.soft_iron)

    @classmethod
    def from_ellipsoid(cls, params: EllipsoidParameters, field_strength=None) -> "MagnetometerCalibration":
        """
        Hard iron is the ellipsoid center. Soft iron maps the ellipsoid onto
        a sphere of radius field_strength, or of the smallest radius when
        no field strength is given.
        """
        scale = min(params.radii.v) if field_strength is None else float(field_strength)
        return cls(
            hard_iron=copy(params.center),
            soft_iron=correction_matrix(params, scale),
        )

    def apply(self, raw) -> Vector3D:
        raw_v = to_vector3d(raw)
        centered = raw_v - self.hard_iron
        calibrated = np.dot(self.soft_iron, centered.v)
        return Vector3D(calibrated)


def calibrate_inertial_points(points, ellipsoid_type=EllipsoidType.ALIGNED, reference: float = 1.0) -> InertialCalibration:
    """One-shot fit and inertial calibration."""
    params = fit(points, ellipsoid_type, eigen=True)
    return InertialCalibration.from_ellipsoid(params, reference=reference)


def calibrate_magnetic_points(points, ellipsoid_type=EllipsoidType.ARBITRARY, field_strength=None) -> MagnetometerCalibration:
    """One-shot fit and magnetometer calibration."""
    params = fit(points, ellipsoid_type, eigen=True)
    return MagnetometerCalibration.from_ellipsoid(params, field_strength=field_strength)
