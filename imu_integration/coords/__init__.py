"""Rotation representations used by the integration engine.

Conventions:
- Quaternions: [qw, qx, qy, qz], scalar first, body-to-navigation
- Rotation matrices: 3x3 numpy arrays with v_nav = R @ v_body
"""

from imu_integration.coords.rotations import (
    is_rotation_matrix,
    quat_conjugate,
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_slerp,
    quat_to_rotation_matrix,
    quat_to_xyzw,
    rotation_matrix_to_quat,
    rotvec_from_quat,
)

__all__ = [
    "is_rotation_matrix",
    "quat_conjugate",
    "quat_from_rotvec",
    "quat_multiply",
    "quat_normalize",
    "quat_slerp",
    "quat_to_rotation_matrix",
    "quat_to_xyzw",
    "rotation_matrix_to_quat",
    "rotvec_from_quat",
]
