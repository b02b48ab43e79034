from pyEllipsoid.quaternion import Vector3D, Quaternion
import numpy as np
import math

GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))

###########################################################
# Conversion helpers
###########################################################

def to_vector3d(value) -> Vector3D:
    if isinstance(value, Vector3D):
        return Vector3D(value)
    if isinstance(value, (list, tuple, np.ndarray)) and len(value) == 3:
        return Vector3D(value)
    raise TypeError(f"Expected Vector3D or length-3 array-like, got {type(value)}")

def to_matrix3(value, default_identity: bool = False) -> np.ndarray:
    if value is None and default_identity:
        return np.eye(3, dtype=float)
    arr = np.asarray(value, dtype=float)
    if arr.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {arr.shape}")
    return arr

def to_points(points) -> np.ndarray:
    '''
    Point cloud as (N,3) float array.
    Accepts arrays, nested lists and sequences of Vector3D.
    '''
    if isinstance(points, (list, tuple)) and len(points) > 0 and isinstance(points[0], Vector3D):
        arr = np.array([p.v for p in points], dtype=float)
    else:
        arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Input data must have three columns, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Input data contains NaN or Inf values")
    return arr

###########################################################
# Rotations
###########################################################

def vector_angle2q(vec, angle: float = 0.0) -> Quaternion:
    '''Create quaternion based on rotation around vector'''
    _vec = to_vector3d(vec)
    _vec.normalize()
    halfAngle = angle * 0.5
    sinHalfAngle = math.sin(halfAngle)
    return Quaternion(
        w = math.cos(halfAngle),
        x = _vec.x * sinHalfAngle,
        y = _vec.y * sinHalfAngle,
        z = _vec.z * sinHalfAngle)

###########################################################
# Point clouds
###########################################################

def fibonacci_sphere(n: int) -> np.ndarray:
    '''
    n quasi uniformly distributed unit vectors, (n,3) array
    Spiral with the golden angle between consecutive points.
    '''
    if n < 1:
        raise ValueError("Need at least one point")
    i = np.arange(n, dtype=float)
    z = 1.0 - (2.0 * i + 1.0) / n
    r = np.sqrt(1.0 - z * z)
    theta = GOLDEN_ANGLE * i
    return np.column_stack((r * np.cos(theta), r * np.sin(theta), z))

def ellipsoid_points(center, radii, r33=None, n: int = 100) -> np.ndarray:
    '''
    Points lying exactly on an ellipsoid

    center: ellipsoid center, Vector3D or length-3 array-like
    radii:  radius along each principal axis
    r33:    rotation matrix, its columns are the principal axes (default identity)
    n:      number of points

    p = center + r33 @ (radii * unit)
    '''
    c = to_vector3d(center).v
    r = to_vector3d(radii).v
    rot = to_matrix3(r33, default_identity=True)
    unit = fibonacci_sphere(n)
    return c + (unit * r) @ rot.T

def algebraic_residuals(v, points) -> np.ndarray:
    '''
    Value of the quadric
      Ax^2 + By^2 + Cz^2 + 2Dxy + 2Exz + 2Fyz + 2Gx + 2Hy + 2Iz + J
    at each point. Zero for points on the surface.
    '''
    v = np.asarray(v, dtype=float)
    if v.shape != (10,):
        raise ValueError(f"Expected 10 algebraic coefficients, got shape {v.shape}")
    p = to_points(points)
    x = p[:, 0]
    y = p[:, 1]
    z = p[:, 2]
    return (v[0]*x*x + v[1]*y*y + v[2]*z*z
            + 2.*(v[3]*x*y + v[4]*x*z + v[5]*y*z)
            + 2.*(v[6]*x + v[7]*y + v[8]*z)
            + v[9])
