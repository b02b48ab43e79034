###########################################################
# Canonical ordering of principal axes
#
# An eigensolver returns the axes of an ellipsoid in arbitrary
# order and with arbitrary signs. Among all reorderings and sign
# flips of the eigenvector triad that form a proper rotation,
# pick the one closest to the reference (identity) frame.
###########################################################

import itertools
import numpy as np

from pyEllipsoid.quaternion import r33toq

ANGLE_TOLERANCE = 1e-12 # radians, candidates closer than this are ties

# permutations in lexicographic order, identity first
PERMUTATIONS = [list(p) for p in itertools.permutations(range(3))]
# sign patterns (+,+,+), (+,+,-), ... , (-,-,-)
SIGNS = [np.array(s, dtype=float) for s in itertools.product((1.0, -1.0), repeat=3)]

def rotation_angle(r33: np.ndarray) -> float:
    '''Angle in radians [0, pi] of the rotation from identity to r33'''
    return r33toq(r33).angle

def least_rotation_angle(eigenvalues, eigenvectors):
    '''
    Reorder and flip eigen pairs for the least rotation from identity

    eigenvalues:  (3,) array
    eigenvectors: (3,3) array, eigenvectors are the columns

    Returns new (eigenvalues, eigenvectors). Each eigenvalue stays paired
    with its column and the returned column matrix has a positive
    determinant. Of the 24 candidates the first one, in permutation then
    sign order, with the smallest angle wins. Non finite input is
    returned unchanged.
    '''
    evals = np.array(eigenvalues, dtype=float).reshape(3)
    evecs = np.array(eigenvectors, dtype=float).reshape(3, 3)

    if not (np.all(np.isfinite(evals)) and np.all(np.isfinite(evecs))):
        return evals, evecs

    best_angle = np.inf
    best = (evals, evecs)
    for perm in PERMUTATIONS:
        columns = evecs[:, perm]
        for signs in SIGNS:
            candidate = columns * signs
            if np.linalg.det(candidate) <= 0.0:
                continue
            angle = rotation_angle(candidate)
            if angle < best_angle - ANGLE_TOLERANCE:
                best_angle = angle
                best = (evals[perm], candidate)

    return best[0].copy(), best[1].copy()
