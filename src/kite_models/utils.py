import numpy as np
from scipy.spatial.transform import Rotation as R

# %% Function definitions


def normalize(vector):
    """Return the unit vector of `vector`; a zero vector is returned unchanged."""
    norm = np.linalg.norm(vector)
    if norm == 0.0:
        return vector
    return vector / norm


def project_onto_plane(vector: np.ndarray, plane_normal: np.ndarray) -> np.ndarray:
    """
    Projects a vector onto a plane defined by its normal.

    Parameters:
    vector (array-like): The vector to be projected onto the plane.
    plane_normal (array-like): The unit normal vector of the plane.

    Returns:
    array-like: The projected vector onto the plane.
    """
    return vector - np.dot(vector, plane_normal) * plane_normal


def acos_clamped(value):
    """Arc cosine that tolerates round-off outside [-1, 1]"""
    return np.arccos(np.clip(value, -1.0, 1.0))


def rotate_ENU2NED(vector):
    """Convert a vector (or the columns of a matrix) from ENU to NED coordinates."""
    R_ENU2NED = np.array([[0, 1, 0], [1, 0, 0], [0, 0, -1]])
    return R_ENU2NED @ vector


def calc_elevation(pos):
    """Elevation angle of a position seen from the origin [rad]"""
    return np.arctan2(pos[2], np.hypot(pos[0], pos[1]))


def calc_azimuth(pos):
    """Azimuth angle of a position, measured from the x-axis (downwind) [rad]"""
    return np.arctan2(pos[1], pos[0])


def calc_tangent_frame(pos):
    """Unit vectors towards the zenith and in azimuth direction on the sphere through `pos`"""
    elevation = calc_elevation(pos)
    azimuth = calc_azimuth(pos)
    e_up = np.array(
        [
            -np.sin(elevation) * np.cos(azimuth),
            -np.sin(elevation) * np.sin(azimuth),
            np.cos(elevation),
        ]
    )
    e_az = np.array([-np.sin(azimuth), np.cos(azimuth), 0.0])
    return e_up, e_az


def calc_heading(pos, e_x):
    """Angle between the kite x-axis and the direction to the zenith, in the tangent plane [rad]"""
    e_up, e_az = calc_tangent_frame(pos)
    return np.arctan2(np.dot(e_x, e_az), np.dot(e_x, e_up))


def calc_course(pos, vel):
    """Angle between the kite velocity and the direction to the zenith, in the tangent plane [rad]"""
    e_up, e_az = calc_tangent_frame(pos)
    return np.arctan2(np.dot(vel, e_az), np.dot(vel, e_up))


def calc_orient_quat(e_x, e_y, e_z):
    """Orientation of the kite frame in NED coordinates as quaternion, scalar first (w, x, y, z)"""
    dcm = rotate_ENU2NED(np.column_stack((e_x, e_y, e_z)))
    quat = R.from_matrix(dcm).as_quat()
    return np.roll(quat, 1)
