"""
Quaternion helpers for attitude laws.

Convention: q = [q1, q2, q3, q4], vector part first, q4 scalar. q_A2B
describes the orientation of frame B with respect to frame A and maps
components: v_B = R(q_A2B) @ v_A.

Composition follows the DCM product: R(q_multiply(q_B2C, q_A2B)) =
R(q_B2C) @ R(q_A2B).
"""

from __future__ import annotations

import numpy as np

Q_IDENTITY = np.array([0., 0., 0., 1.])


def q_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Compose two orientations, R(q1 * q2) = R(q1) @ R(q2).

    Args:
        q1: Outer rotation [q1,q2,q3, q4_scalar], shape (4,).
        q2: Inner rotation, shape (4,).

    Returns:
        Product quaternion, shape (4,).
    """
    v1, w1 = np.asarray(q1[:3], dtype=float), q1[3]
    v2, w2 = np.asarray(q2[:3], dtype=float), q2[3]
    vector = w1 * v2 + w2 * v1 - np.cross(v1, v2)
    return np.append(vector, w1 * w2 - np.dot(v1, v2))


def q_normalize(q: np.ndarray) -> np.ndarray:
    """Scale to unit norm; a null quaternion maps to the identity."""
    n = np.linalg.norm(q)
    if n < 1e-15:
        return Q_IDENTITY.copy()
    return q / n


def q_to_dcm(q: np.ndarray) -> np.ndarray:
    """Passive direction cosine matrix of a unit quaternion.

    R = (q4² - |v|²) I + 2 v vᵀ - 2 q4 [v×], so that v_B = R @ v_A for q_A2B.

    Args:
        q: Unit quaternion [q1,q2,q3, q4_scalar], shape (4,).

    Returns:
        3x3 DCM.
    """
    v = np.asarray(q[:3], dtype=float)
    w = q[3]
    v_cross = np.array([
        [0., -v[2], v[1]],
        [v[2], 0., -v[0]],
        [-v[1], v[0], 0.]
    ])
    return (w * w - v @ v) * np.eye(3) + 2.0 * np.outer(v, v) - 2.0 * w * v_cross


def dcm_to_q(R: np.ndarray) -> np.ndarray:
    """Unit quaternion of a passive DCM (Shepperd).

    Pivots on the largest of the trace and diagonal terms. The result has
    q4 >= 0.

    Args:
        R: 3x3 rotation matrix (v_B = R @ v_A).

    Returns:
        Unit quaternion q_A2B, shape (4,).
    """
    tr = np.trace(R)
    i = int(np.argmax([R[0, 0], R[1, 1], R[2, 2], tr]))

    q = np.empty(4)
    if i == 3:
        q[:3] = [R[1, 2] - R[2, 1], R[2, 0] - R[0, 2], R[0, 1] - R[1, 0]]
        q[3] = 1.0 + tr
    else:
        j, k = (i + 1) % 3, (i + 2) % 3
        q[i] = 1.0 + 2.0 * R[i, i] - tr
        q[j] = R[i, j] + R[j, i]
        q[k] = R[i, k] + R[k, i]
        q[3] = R[j, k] - R[k, j]

    if q[3] < 0.0:
        q = -q
    return q_normalize(q)


def q_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Frame rotation of `angle` radians about `axis`.

    The new frame is the old one turned by `angle` about `axis`, so a fixed
    vector's components turn by -angle. Example: 90° about +Z gives a frame
    whose +X axis is the old +Y axis, and R @ [1,0,0] = [0,-1,0].

    Args:
        axis: Rotation axis, shape (3,). Normalized internally.
        angle: Rotation angle [rad].

    Returns:
        Unit quaternion, shape (4,).
    """
    axis = np.asarray(axis, dtype=float)
    axis = axis / np.linalg.norm(axis)
    half = angle / 2.0
    s = np.sin(half)
    return np.array([axis[0]*s, axis[1]*s, axis[2]*s, np.cos(half)])
