###########################################################
# Ellipsoid fit
#
# Fits Ax^2 + By^2 + Cz^2 + 2Dxy + 2Exz + 2Fyz + 2Gx + 2Hy + 2Iz + J = 0
# to a point cloud with the constraint A + B + C = -3 removing the
# scale ambiguity, then converts the algebraic form into
# center, radii and principal axes.
#
# Based on the ellipsoid fit by Yury Petrov, Northeastern University
# https://www.mathworks.com/matlabcentral/fileexchange/24693-ellipsoid-fit
###########################################################

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional
import logging
import numbers
import numpy as np

from pyEllipsoid.quaternion import Vector3D
from pyEllipsoid.eigen_order import least_rotation_angle
from pyEllipsoid.utilities import to_vector3d, to_matrix3, to_points

logger = logging.getLogger(__name__)

SINGULAR_TOLERANCE = 1e-12 # relative size below which the constant term of the centered form is zero

class EllipsoidType(IntEnum):
    '''
    Symmetry the fitted ellipsoid is constrained to

    ARBITRARY          any orientation, three radii
    XY_EQUAL           any orientation, x and y radii equal
    XZ_EQUAL           any orientation, x and z radii equal
    SPHERE             one radius
    ALIGNED            axes along x, y, z
    ALIGNED_XY_EQUAL   axes along x, y, z and x radius = y radius
    ALIGNED_XZ_EQUAL   axes along x, y, z and x radius = z radius
    '''
    ARBITRARY        = 0
    XY_EQUAL         = 1
    XZ_EQUAL         = 2
    SPHERE           = 3
    ALIGNED          = 4
    ALIGNED_XY_EQUAL = 5
    ALIGNED_XZ_EQUAL = 6

    @property
    def n_params(self) -> int:
        '''number of free coefficients, also the minimum number of points'''
        return _N_PARAMS[self]

    @property
    def has_cross_terms(self) -> bool:
        '''xy, xz and yz terms are fitted'''
        return self in (EllipsoidType.ARBITRARY, EllipsoidType.XY_EQUAL, EllipsoidType.XZ_EQUAL)

_N_PARAMS = {
    EllipsoidType.ARBITRARY:        9,
    EllipsoidType.XY_EQUAL:         8,
    EllipsoidType.XZ_EQUAL:         8,
    EllipsoidType.SPHERE:           4,
    EllipsoidType.ALIGNED:          6,
    EllipsoidType.ALIGNED_XY_EQUAL: 5,
    EllipsoidType.ALIGNED_XZ_EQUAL: 5,
}

def to_ellipsoid_type(value) -> EllipsoidType:
    '''
    EllipsoidType from a member, its integer value or its name.
    Names are case insensitive and underscores are optional,
    'aligned_xy_equal' and 'AlignedXYEqual' are the same.
    '''
    if isinstance(value, EllipsoidType):
        return value
    if isinstance(value, str):
        key = value.replace('_', '').upper()
        for member in EllipsoidType:
            if member.name.replace('_', '') == key:
                return member
        raise ValueError(f"Unknown ellipsoid type name: {value!r}")
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        try:
            return EllipsoidType(int(value))
        except ValueError:
            raise ValueError(f"Unknown ellipsoid type value: {value}") from None
    raise TypeError(f"Expected EllipsoidType, int or str, got {type(value)}")

@dataclass
class EllipsoidParameters:
    '''
    Result of an ellipsoid fit

    center:       ellipsoid center
    radii:        radius along each principal axis, NaN or Inf when the
                  fitted surface is not a real ellipsoid
    coefficients: the 10 algebraic coefficients A..J, when requested
    eigenvalues:  eigenvalues of the centered, normalized form, when requested
    eigenvectors: principal axes as unit columns of a 3x3 matrix, when requested

    eigenvalues, eigenvectors and radii share the same axis order.
    '''

    center: Vector3D = field(default_factory=lambda: Vector3D(0.0, 0.0, 0.0))
    radii: Vector3D = field(default_factory=lambda: Vector3D(1.0, 1.0, 1.0))
    coefficients: Optional[np.ndarray] = None
    eigenvalues: Optional[np.ndarray] = None
    eigenvectors: Optional[np.ndarray] = None

    def __post_init__(self):
        self.center = to_vector3d(self.center)
        self.radii = to_vector3d(self.radii)
        if self.coefficients is not None:
            self.coefficients = np.asarray(self.coefficients, dtype=float)
            if self.coefficients.shape != (10,):
                raise ValueError(f"Expected 10 coefficients, got shape {self.coefficients.shape}")
        if self.eigenvalues is not None:
            self.eigenvalues = np.asarray(self.eigenvalues, dtype=float)
            if self.eigenvalues.shape != (3,):
                raise ValueError(f"Expected 3 eigenvalues, got shape {self.eigenvalues.shape}")
        if self.eigenvectors is not None:
            self.eigenvectors = to_matrix3(self.eigenvectors)

    @property
    def is_degenerate(self) -> bool:
        '''center or radii are not finite, the points do not describe an ellipsoid'''
        return not (self.center.isFinite and self.radii.isFinite)

###########################################################
# Pipeline
###########################################################

def design_matrix(points, ellipsoid_type=EllipsoidType.ARBITRARY):
    '''
    Design matrix D and right hand side d2 = x^2 + y^2 + z^2

    The squared terms are combined so that A + B + C = -3 holds
    after back substitution, see algebraic_coefficients().
    Cross and linear terms are scaled by 2, a column of ones
    carries J.
    '''
    option = to_ellipsoid_type(ellipsoid_type)
    data = to_points(points)

    x = data[:, 0]
    y = data[:, 1]
    z = data[:, 2]
    xx = x*x
    yy = y*y
    zz = z*z
    ones = np.ones(len(x))

    if   option == EllipsoidType.ARBITRARY:
        D = np.column_stack((xx+yy-2*zz, xx+zz-2*yy, 2*x*y, 2*x*z, 2*y*z, 2*x, 2*y, 2*z, ones))
    elif option == EllipsoidType.XY_EQUAL:
        D = np.column_stack((xx+yy-2*zz, 2*x*y, 2*x*z, 2*y*z, 2*x, 2*y, 2*z, ones))
    elif option == EllipsoidType.XZ_EQUAL:
        D = np.column_stack((xx+zz-2*yy, 2*x*y, 2*x*z, 2*y*z, 2*x, 2*y, 2*z, ones))
    elif option == EllipsoidType.SPHERE:
        D = np.column_stack((2*x, 2*y, 2*z, ones))
    elif option == EllipsoidType.ALIGNED:
        D = np.column_stack((xx+yy-2*zz, xx+zz-2*yy, 2*x, 2*y, 2*z, ones))
    elif option == EllipsoidType.ALIGNED_XY_EQUAL:
        D = np.column_stack((xx+yy-2*zz, 2*x, 2*y, 2*z, ones))
    else: # ALIGNED_XZ_EQUAL
        D = np.column_stack((xx+zz-2*yy, 2*x, 2*y, 2*z, ones))

    d2 = xx + yy + zz

    return D, d2

def solve_normal_equations(D, d2, rcond=None) -> np.ndarray:
    '''
    Solve (D'D) u = D' d2

    SVD based least squares, a singular D'D returns the minimum norm
    solution instead of raising.
    '''
    D = np.asarray(D, dtype=float)
    d2 = np.asarray(d2, dtype=float)
    if D.ndim != 2 or D.shape[0] == 0:
        raise ValueError(f"Design matrix needs at least one row, got shape {D.shape}")
    if d2.shape != (D.shape[0],):
        raise ValueError(f"Right hand side of length {D.shape[0]} expected, got shape {d2.shape}")

    u, _, rank, _ = np.linalg.lstsq(D.T @ D, D.T @ d2, rcond=rcond)
    if rank < D.shape[1]:
        logger.debug("Normal equations are rank deficient: rank %d of %d", rank, D.shape[1])
    return u

def algebraic_coefficients(u, ellipsoid_type=EllipsoidType.ARBITRARY) -> np.ndarray:
    '''
    Expand the reduced solution u into the 10 coefficients
      [A, B, C, D, E, F, G, H, I, J]
    applying the symmetry of the ellipsoid type. Constrained
    cross terms are zero.
    '''
    option = to_ellipsoid_type(ellipsoid_type)
    u = np.asarray(u, dtype=float).reshape(-1)
    if len(u) != option.n_params:
        raise ValueError(f"{option.name} needs {option.n_params} coefficients, got {len(u)}")

    v = np.zeros(10)
    if option in (EllipsoidType.ARBITRARY, EllipsoidType.ALIGNED):
        v[0:3] = (u[0] + u[1] - 1., u[0] - 2.*u[1] - 1., u[1] - 2.*u[0] - 1.)
        rest = u[2:]
    elif option in (EllipsoidType.XY_EQUAL, EllipsoidType.ALIGNED_XY_EQUAL):
        v[0:3] = (u[0] - 1., u[0] - 1., -2.*u[0] - 1.)
        rest = u[1:]
    elif option in (EllipsoidType.XZ_EQUAL, EllipsoidType.ALIGNED_XZ_EQUAL):
        v[0:3] = (u[0] - 1., -2.*u[0] - 1., u[0] - 1.)
        rest = u[1:]
    else: # SPHERE
        v[0:3] = -1.
        rest = u

    if option.has_cross_terms:
        v[3:10] = rest
    else:
        v[6:10] = rest

    return v

def algebraic_matrix(v) -> np.ndarray:
    '''Symmetric 4x4 homogeneous form of the 10 coefficients'''
    v = np.asarray(v, dtype=float)
    if v.shape != (10,):
        raise ValueError(f"Expected 10 algebraic coefficients, got shape {v.shape}")
    return np.array([[v[0], v[3], v[4], v[6]],
                     [v[3], v[1], v[5], v[7]],
                     [v[4], v[5], v[2], v[8]],
                     [v[6], v[7], v[8], v[9]]])

def decompose(v, canonicalize=least_rotation_angle):
    '''
    Center, radii and principal axes of the quadric v

    canonicalize(eigenvalues, eigenvectors) -> (eigenvalues, eigenvectors)
    orders the principal axes.

    Returns center, radii, eigenvalues, eigenvectors as np.arrays.
    Degenerate surfaces give NaN or Inf, nothing is raised.
    '''
    A = algebraic_matrix(v)

    if not np.all(np.isfinite(A)):
        nan3 = np.full(3, np.nan)
        evals, evecs = canonicalize(nan3, np.full((3, 3), np.nan))
        return nan3, nan3.copy(), evals, evecs

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        # Find the center of the ellipsoid
        center = -np.linalg.lstsq(A[:3, :3], A[:3, 3], rcond=None)[0]

        # Form the corresponding translation matrix
        T = np.eye(4)
        T[3, :3] = center

        # Translate to the center
        R = T @ A @ T.T

        M = R[:3, :3] / -R[3, 3]

    # Solve the eigenproblem on the symmetric part of M, so repeated
    # eigenvalues still get orthonormal eigenvectors
    # R[3,3] at round off level means the surface passes through its own center
    if abs(R[3, 3]) > SINGULAR_TOLERANCE * np.max(np.abs(A)) and np.all(np.isfinite(M)):
        M = 0.5 * (M + M.T)
        evals, evecs = np.linalg.eigh(M)
    else:
        evals = np.full(3, np.nan)
        evecs = np.full((3, 3), np.nan)

    evals, evecs = canonicalize(evals, evecs)
    evals = np.asarray(evals, dtype=float)
    evecs = np.asarray(evecs, dtype=float)

    # NaN for hyperboloids, Inf for degenerate axes
    # adding 0.0 turns -0.0 into 0.0 so no radius becomes -Inf
    with np.errstate(divide='ignore', invalid='ignore'):
        radii = 1. / np.sqrt(evals + 0.0)

    return center, radii, evals, evecs

###########################################################
# Fit
###########################################################

def fit(points, ellipsoid_type=EllipsoidType.ARBITRARY, coefficients: bool = False,
        eigen: bool = False, canonicalize=least_rotation_angle, rcond=None) -> EllipsoidParameters:
    '''
    Fit an ellipsoid to a set of xyz data points:

      params = fit(points)
      params = fit(points, EllipsoidType.ALIGNED)
      params = fit(points, 'xy_equal', eigen=True)
      params = fit(points, EllipsoidType.SPHERE, coefficients=True)

    Parameters:
    * points         - Cartesian data, (N,3) array-like or list of Vector3D
    * ellipsoid_type - EllipsoidType, its value or its name, default ARBITRARY
    * coefficients   - also return the 10 algebraic coefficients
    * eigen          - also return eigenvalues and eigenvectors
    * canonicalize   - orders the principal axes, default least rotation from identity
    * rcond          - cut off for small singular values of the normal equations

    Output:
    * EllipsoidParameters with center and radii and, when requested,
      coefficients, eigenvalues and eigenvectors

    Raises ValueError for malformed input and for fewer points than the
    ellipsoid type has free coefficients. Degenerate point sets
    (collinear, coplanar) do not raise, they return NaN or Inf radii.

    The normal equations square the condition number of the design matrix.
    Raw sensor data far from the origin (offset much larger than the radii)
    should be centered first and the offset added back to the center:

      mean = points.mean(axis=0)
      params = fit(points - mean)
      center = params.center + Vector3D(mean)
    '''
    option = to_ellipsoid_type(ellipsoid_type)
    data = to_points(points)

    if len(data) < option.n_params:
        raise ValueError(f"Must have at least {option.n_params} points to fit a {option.name} ellipsoid, got {len(data)}")

    logger.debug("Fitting %s ellipsoid to %d points", option.name, len(data))

    D, d2 = design_matrix(data, option)
    u = solve_normal_equations(D, d2, rcond=rcond)
    v = algebraic_coefficients(u, option)
    center, radii, evals, evecs = decompose(v, canonicalize=canonicalize)

    params = EllipsoidParameters(
        center=center,
        radii=radii,
        coefficients=v if coefficients else None,
        eigenvalues=evals if eigen else None,
        eigenvectors=evecs if eigen else None,
    )

    if params.is_degenerate:
        logger.warning("Degenerate %s fit, points do not describe an ellipsoid: radii %s", option.name, params.radii)

    return params
