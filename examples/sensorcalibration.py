'''
Magnetometer and accelerometer calibration from an ellipsoid fit

    Record Data:
        Rotate the sensor through as many orientations as possible.
        The raw readings trace an ellipsoid.

    Fit Data:
        params = fit(points, EllipsoidType.ARBITRARY, eigen=True)
        correction matrix:
            W = evecs @ diag(min(radii) / radii) @ evecs.T

    Correction:
        calibrated = W @ (raw - center)

This script simulates raw readings with hard and soft iron distortion and
a little noise, fits them and prints the calibration.
'''
import logging
import numpy as np

from pyEllipsoid.fit import EllipsoidType, fit
from pyEllipsoid.calibration import MagnetometerCalibration, calibrate_inertial_points
from pyEllipsoid.utilities import ellipsoid_points, vector_angle2q
from pyEllipsoid.quaternion import DEG2RAD

CALSIZE = 1000
NOISE   = 0.2  # micro Tesla

if __name__ == '__main__':

    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    logger = logging.getLogger("Main")

    rng = np.random.default_rng()

    # Magnetometer, 48 micro Tesla field with hard and soft iron
    r33 = vector_angle2q((1., 1., 0.), 25. * DEG2RAD).r33
    mag = ellipsoid_points((12., -30., 8.), (52., 47., 44.), r33, n=CALSIZE)
    mag += rng.normal(scale=NOISE, size=mag.shape)

    params = fit(mag, EllipsoidType.ARBITRARY, eigen=True)
    logger.info("Center: %s", params.center)
    logger.info("Radii:  %s", params.radii)

    model = MagnetometerCalibration.from_ellipsoid(params, field_strength=48.)
    norms = np.array([model.apply(p).norm for p in mag])
    logger.info("Hard iron: %s", model.hard_iron)
    logger.info("Soft iron:\n%s", model.soft_iron)
    logger.info("Calibrated field %.3f +/- %.3f", norms.mean(), norms.std())

    # Accelerometer, axis aligned gain and offset errors
    acc = ellipsoid_points((0.03, -0.02, 0.05), (1.01, 0.97, 1.04), n=CALSIZE)
    acc += rng.normal(scale=0.002, size=acc.shape)

    inertial = calibrate_inertial_points(acc, EllipsoidType.ALIGNED, reference=1.0)
    logger.info("Offset:      %s", inertial.offset)
    logger.info("Sensitivity: %s", inertial.sensitivity)
