from pyEllipsoid.fit import (
    EllipsoidType,
    EllipsoidParameters,
    fit,
)
from pyEllipsoid.eigen_order import least_rotation_angle
