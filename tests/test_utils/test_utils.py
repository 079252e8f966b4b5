import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R
from kite_models.utils import (
    project_onto_plane,
    acos_clamped,
    normalize,
    rotate_ENU2NED,
    calc_elevation,
    calc_azimuth,
    calc_tangent_frame,
    calc_heading,
    calc_course,
    calc_orient_quat,
)

# Test for project_onto_plane function
@pytest.mark.parametrize("vector, plane_normal, expected", [
    (np.array([3, 3, 3]), np.array([0, 0, 1]), np.array([3, 3, 0])),
    (np.array([1.0, 2.0, 3.0]), np.array([1, 0, 0]), np.array([0, 2, 3])),
])
def test_project_onto_plane(vector, plane_normal, expected):
    result = project_onto_plane(vector, plane_normal)
    assert np.allclose(result, expected, atol=1e-6)

@pytest.mark.parametrize("value, expected", [
    (1.0 + 1e-12, 0.0),
    (-1.0 - 1e-12, np.pi),
    (0.0, np.pi / 2),
])
def test_acos_clamped(value, expected):
    assert np.isclose(acos_clamped(value), expected)

def test_normalize():
    assert np.allclose(normalize(np.array([3.0, 0.0, 4.0])), [0.6, 0.0, 0.8])
    # zero vectors stay zero
    assert np.allclose(normalize(np.zeros(3)), np.zeros(3))

#%%
# Test for the ENU to NED rotation
def test_known_vector_conversion():
    east = np.array([1, 0, 0])
    north = np.array([0, 1, 0])
    up = np.array([0, 0, 1])

    assert np.allclose(rotate_ENU2NED(east), np.array([0, 1, 0]))  # East is the second axis in NED
    assert np.allclose(rotate_ENU2NED(north), np.array([1, 0, 0]))  # North is the first axis in NED
    assert np.allclose(rotate_ENU2NED(up), np.array([0, 0, -1]))  # Up is -Down

def test_rotate_ENU2NED_is_involution():
    vector = np.array([5, -3, 2])
    assert np.allclose(rotate_ENU2NED(rotate_ENU2NED(vector)), vector)

#%%
# Test for angles seen from the ground station
def test_elevation_azimuth():
    pos = np.array([100.0, 0.0, 100.0])
    assert np.isclose(calc_elevation(pos), np.pi / 4)
    assert np.isclose(calc_azimuth(pos), 0.0)
    assert np.isclose(calc_azimuth(np.array([0.0, 10.0, 5.0])), np.pi / 2)

@pytest.mark.parametrize("pos", [
    np.array([100.0, 0.0, 100.0]),
    np.array([50.0, -30.0, 200.0]),
    np.array([10.0, 40.0, 5.0]),
])
def test_tangent_frame_is_orthonormal(pos):
    e_up, e_az = calc_tangent_frame(pos)
    assert np.isclose(np.linalg.norm(e_up), 1.0)
    assert np.isclose(np.linalg.norm(e_az), 1.0)
    assert np.isclose(np.dot(e_up, e_az), 0.0)
    # both lie in the plane tangent to the sphere through pos
    assert np.isclose(np.dot(e_up, pos), 0.0)
    assert np.isclose(np.dot(e_az, pos), 0.0)

def test_heading_and_course_towards_zenith():
    pos = np.array([100.0, 0.0, 100.0])
    up = np.array([-1.0, 0.0, 1.0]) / np.sqrt(2)
    assert np.isclose(calc_heading(pos, up), 0.0)
    assert np.isclose(calc_course(pos, 20.0 * up), 0.0)
    assert np.isclose(calc_course(pos, np.array([0.0, 5.0, 0.0])), np.pi / 2)

#%%
# Test for the orientation quaternion
def test_calc_orient_quat_identity():
    # kite frame aligned with north, east, down
    e_x = np.array([0.0, 1.0, 0.0])
    e_y = np.array([1.0, 0.0, 0.0])
    e_z = np.array([0.0, 0.0, -1.0])
    quat = calc_orient_quat(e_x, e_y, e_z)
    assert np.allclose(np.abs(quat), [1.0, 0.0, 0.0, 0.0])

def test_orient_quat_matches_dcm():
    # kite heading east at 30 degrees elevation, wings level
    elevation = np.radians(30.0)
    e_x = np.array([np.cos(elevation), 0.0, np.sin(elevation)])
    e_y = np.array([0.0, -1.0, 0.0])
    e_z = np.cross(e_x, e_y)
    quat = calc_orient_quat(e_x, e_y, e_z)
    assert np.isclose(np.linalg.norm(quat), 1.0)

    # scalar first -> scipy expects scalar last
    dcm = R.from_quat(np.roll(quat, -1)).as_matrix()
    assert np.allclose(dcm, rotate_ENU2NED(np.column_stack((e_x, e_y, e_z))), atol=1e-9)
