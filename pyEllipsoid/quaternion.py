###########################################################
# Quaternion and Vector3D data types
# Used to carry fit results (center, radii) and to measure
# the rotation of principal axis frames
#
# Urs Utzinger, Spring 2023
###########################################################

import numpy as np
import math
import numbers

###########################################################
# Constants
###########################################################

DEG2RAD = math.pi / 180.0
EPSILON = 2.0*math.ldexp(1.0, -53)

class Quaternion():
    '''
    Quaternion Class
    q1 = Quaternion(1., 2., 3., 4.)
    q2 = Quaternion(w=5., x=6., y=7., z=8.)
    q3 = Quaternion(np.array([9,10,11,12]))

    q4 = q1 * q2

    q1.conjugate
    q1.normalize()
    q1.r33 (cosine matrix)
    q1.angle: rotation angle in radians
    q1.norm: length of quaternion
    q1.q: quaternion as np.array
    '''
    def __init__(self, w=1.0, x=0.0, y=0.0, z=0.0):
        if isinstance(w, numbers.Number):
            self.w = w
            self.x = x
            self.y = y
            self.z = z
        elif isinstance(w, (list, tuple, np.ndarray)) and len(w) == 4:
            self.w = w[0]
            self.x = w[1]
            self.y = w[2]
            self.z = w[3]
        elif isinstance(w, Quaternion):
            self.w = w.w
            self.x = w.x
            self.y = w.y
            self.z = w.z
        else:
            raise TypeError("Unsupported type for Quaternion: {}".format(type(w)))

    def __copy__(self):
        return Quaternion(self.w, self.x, self.y, self.z)

    def __str__(self):
        return f"Quaternion({self.w}, {self.x}, {self.y}, {self.z})"

    def __repr__(self):
        return str(self)

    def __mul__(self, other):
        '''Hamilton product of two quaternions'''
        if isinstance(other, Quaternion):
            w = (self.w * other.w) - (self.x * other.x) - (self.y * other.y) - (self.z * other.z)
            x = (self.w * other.x) + (self.x * other.w) + (self.y * other.z) - (self.z * other.y)
            y = (self.w * other.y) - (self.x * other.z) + (self.y * other.w) + (self.z * other.x)
            z = (self.w * other.z) + (self.x * other.y) - (self.y * other.x) + (self.z * other.w)
            return Quaternion(w, x, y, z)
        else:
            raise TypeError("Unsupported operand type for *: Quaternion and {}".format(type(other)))

    def normalize(self):
        mag = self.norm
        if mag != 0:
            self.w = self.w/mag
            self.x = self.x/mag
            self.y = self.y/mag
            self.z = self.z/mag

    @property
    def q(self) -> np.ndarray:
        '''quaternion as np.array [w,x,y,z]'''
        return np.array([self.w, self.x, self.y, self.z])

    @property
    def conjugate(self):
        '''conjugate of quaternion'''
        return Quaternion(self.w, -self.x, -self.y, -self.z)

    @property
    def norm(self) -> float:
        '''length of quaternion'''
        return math.sqrt(self.w*self.w + self.x*self.x + self.y*self.y + self.z*self.z)

    @property
    def angle(self) -> float:
        '''
        rotation angle of a unit quaternion in [0, pi]
        q and -q describe the same rotation, hence |w|
        '''
        return 2.0 * math.acos(min(1.0, abs(self.w)))

    @property
    def r33(self) -> np.ndarray:
        '''
        quaternion to 3x3 rotation matrix
        simplifications because ww+xx+yy+zz = 1

        - https://www.euclideanspace.com/maths/geometry/rotations/conversons/quaternionToMatrix/index.htm

        Assuming the quaternion R rotates a vector v according to

            v' = R * v * R⁻¹,

        this returns the 3x3 matrix ℛ with v' = ℛ * v.
        '''

        xx = self.x * self.x
        xy = self.x * self.y
        xz = self.x * self.z
        xw = self.x * self.w
        yy = self.y * self.y
        yz = self.y * self.z
        yw = self.y * self.w
        zz = self.z * self.z
        zw = self.z * self.w

        return np.array([
            [1.0 - 2.*(yy + zz),          2.*(xy - zw),          2.*(xz + yw)],
            [      2.*(xy + zw),    1.0 - 2.*(xx + zz),          2.*(yz - xw)],
            [      2.*(xz - yw),          2.*(yz + xw),    1.0 - 2.*(xx + yy)]
        ])

def r33toq(r33) -> Quaternion:
    '''
    Rotation Matrix to Quaternion
    https://github.com/blender/blender/blob/756538b4a117cb51a15e848fa6170143b6aafcd8/source/blender/blenlib/intern/math_rotation.c#L272

    Assuming an orthogonal 3x3 matrix ℛ rotates a vector v such that

        v' = ℛ * v,

    returns the unit quaternion R with v' = R * v * R⁻¹.
    The branch is chosen on the largest diagonal term so the division
    by the leading component stays well conditioned.
    '''

    if not (isinstance(r33, np.ndarray) and r33.shape == (3,3)):
        raise TypeError("Unsupported operand type for r33toq: {}".format(type(r33)))

    diagonals = np.array([
        r33[0, 0],
        r33[1, 1],
        r33[2, 2],
        r33[0, 0] + r33[1, 1] + r33[2, 2]
    ])

    index = np.argmax(diagonals)

    if index == 3:
        qw = 1 + r33[0,0] + r33[1,1] + r33[2,2]
        qx =     r33[2,1] - r33[1,2]
        qy =     r33[0,2] - r33[2,0]
        qz =     r33[1,0] - r33[0,1]
    elif index == 0:
        qw =     r33[2,1] - r33[1,2]
        qx = 1 + r33[0,0] - r33[1,1] - r33[2,2]
        qy =     r33[0,1] + r33[1,0]
        qz =     r33[0,2] + r33[2,0]
    elif index == 1:
        qw =     r33[0,2] - r33[2,0]
        qx =     r33[1,0] + r33[0,1]
        qy = 1 - r33[0,0] + r33[1,1] - r33[2,2]
        qz =     r33[1,2] + r33[2,1]
    else:
        qw =     r33[1,0] - r33[0,1]
        qx =     r33[2,0] + r33[0,2]
        qy =     r33[2,1] + r33[1,2]
        qz = 1 - r33[0,0] - r33[1,1] + r33[2,2]

    q = Quaternion(float(qw), float(qx), float(qy), float(qz))
    q.normalize()

    return q

###############################################################################################

class Vector3D():
    '''
    3D Vector Class
    v1 = Vector3D(1., 2., 3.)
    v2 = Vector3D(x=4., y=5., z=6.)
    v3 = Vector3D(np.array([7,8,9]))

    v4 = v1 + v2
    v5 = v1 * v2
    v6 = 2. * v1

    v1.dot(v2)
    v1.normalize()
    v1.norm: length of vector
    v1.v: vector as np.array
    v1.isFinite: no NaN or Inf component
    '''
    def __init__(self, x=0.0, y=0.0, z=0.0):
        if isinstance(x, numbers.Number):
            self.x = x
            self.y = y
            self.z = z
        elif isinstance(x, (list, tuple, np.ndarray)) and len(x) == 3:
            self.x = float(x[0])
            self.y = float(x[1])
            self.z = float(x[2])
        elif isinstance(x, Vector3D):
            self.x = x.x
            self.y = x.y
            self.z = x.z
        else:
            raise TypeError("Unsupported type for Vector3D: {}".format(type(x)))

    def __copy__(self):
        return Vector3D(self.x, self.y, self.z)

    def __iter__(self):
        return iter((self.x, self.y, self.z))

    def __str__(self):
        return f"Vector3D({self.x}, {self.y}, {self.z})"

    def __repr__(self):
        return str(self)

    def __add__(self, other):
        if isinstance(other, Vector3D):
            return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)
        elif isinstance(other, numbers.Number):
            return Vector3D(self.x + other, self.y + other, self.z + other)
        else:
            raise TypeError("Unsupported operand type for +: Vector3D and {}".format(type(other)))

    def __sub__(self, other):
        if isinstance(other, Vector3D):
            return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)
        elif isinstance(other, numbers.Number):
            return Vector3D(self.x - other, self.y - other, self.z - other)
        else:
            raise TypeError("Unsupported operand type for -: Vector3D and {}".format(type(other)))

    def __mul__(self, other):
        '''element wise with vector, scale with number'''
        if isinstance(other, Vector3D):
            return Vector3D(self.x * other.x, self.y * other.y, self.z * other.z)
        elif isinstance(other, numbers.Number):
            return Vector3D(self.x * other, self.y * other, self.z * other)
        else:
            raise TypeError("Unsupported operand type for *: Vector3D and {}".format(type(other)))

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        if isinstance(other, numbers.Number):
            return Vector3D(self.x / other, self.y / other, self.z / other)
        elif isinstance(other, Vector3D):
            return Vector3D(self.x / other.x, self.y / other.y, self.z / other.z)
        else:
            raise TypeError("Unsupported operand type for /: Vector3D and {}".format(type(other)))

    def normalize(self):
        mag = self.norm
        if mag != 0:
            self.x = self.x/mag
            self.y = self.y/mag
            self.z = self.z/mag

    def dot(self, other) -> float:
        if isinstance(other, Vector3D):
            return self.x * other.x + self.y * other.y + self.z * other.z
        if isinstance(other, np.ndarray) and len(other) == 3:
            return self.x * other[0] + self.y * other[1] + self.z * other[2]
        raise TypeError("Unsupported operand type for dot product: Vector3D and {}".format(type(other)))

    @property
    def v(self) -> np.ndarray:
        '''returns np array of vector'''
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def norm(self) -> float:
        return math.sqrt(self.x*self.x + self.y*self.y + self.z*self.z)

    @property
    def isZero(self) -> bool:
        return (abs(self.x) <= EPSILON and abs(self.y) <= EPSILON and abs(self.z) <= EPSILON)

    @property
    def isFinite(self) -> bool:
        return (math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z))
