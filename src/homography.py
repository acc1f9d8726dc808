"""4-point to 4-point planar homography via the projective basis method.

Each quad ``(p1, p2, p3, p4)`` yields a matrix ``B`` sending the canonical
homogeneous basis ``(1,0,0), (0,1,0), (0,0,1), (1,1,1)`` onto its corners.
The source-to-destination mapping is then ``B_dst @ adj(B_src)``, normalised
so that the bottom-right entry is 1.
"""

from typing import Iterable, Sequence, Tuple

import numpy as np

from errors import DegenerateMappingError


def _as_quad(points) -> np.ndarray:
    """Coerce four (x, y) pairs or Corner objects into a 4x2 float array."""
    rows = []
    for p in points:
        if hasattr(p, "x") and hasattr(p, "y"):
            rows.append((float(p.x), float(p.y)))
        else:
            x, y = p
            rows.append((float(x), float(y)))
    if len(rows) != 4:
        raise ValueError(f"expected 4 points, got {len(rows)}")
    return np.array(rows, dtype=np.float64)


def determinant3(m: np.ndarray) -> float:
    """Determinant of a 3x3 matrix by cofactor expansion along the first row."""
    return float(
        m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
        - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
        + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
    )


def adjugate3(m: np.ndarray) -> np.ndarray:
    """Classical adjugate (transposed cofactor matrix) of a 3x3 matrix."""
    return np.array(
        [
            [
                m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1],
                m[0, 2] * m[2, 1] - m[0, 1] * m[2, 2],
                m[0, 1] * m[1, 2] - m[0, 2] * m[1, 1],
            ],
            [
                m[1, 2] * m[2, 0] - m[1, 0] * m[2, 2],
                m[0, 0] * m[2, 2] - m[0, 2] * m[2, 0],
                m[0, 2] * m[1, 0] - m[0, 0] * m[1, 2],
            ],
            [
                m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0],
                m[0, 1] * m[2, 0] - m[0, 0] * m[2, 1],
                m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0],
            ],
        ],
        dtype=np.float64,
    )


def basis_to_points(quad) -> np.ndarray:
    """Return the matrix mapping the homogeneous basis onto the four quad corners.

    Raises ``DegenerateMappingError`` when three of the corners are collinear.
    """
    q = _as_quad(quad)
    m = np.array(
        [
            [q[0, 0], q[1, 0], q[2, 0]],
            [q[0, 1], q[1, 1], q[2, 1]],
            [1.0, 1.0, 1.0],
        ],
        dtype=np.float64,
    )
    det = determinant3(m)
    if det == 0.0:
        raise DegenerateMappingError("first three corners are collinear")

    v = np.array([q[3, 0], q[3, 1], 1.0], dtype=np.float64)
    s = adjugate3(m) @ v / det
    # a zero coefficient means the fourth corner sits on a line through two others
    if np.any(s == 0.0):
        raise DegenerateMappingError("fourth corner is collinear with two others")
    if not np.all(np.isfinite(s)):
        raise DegenerateMappingError("basis coefficients are not finite")

    return m * s  # scales column j by s[j]


def solve_homography(source, destination) -> np.ndarray:
    """Return the normalised 3x3 homography taking ``source`` onto ``destination``.

    Both arguments are four corners in the order top-left, top-right,
    bottom-right, bottom-left (any consistent order works). Raises
    ``DegenerateMappingError`` when either quad is rank deficient or the
    result cannot be normalised.
    """
    b_src = basis_to_points(source)
    b_dst = basis_to_points(destination)

    # adj(B_src) is proportional to its inverse; the factor cancels below
    h = b_dst @ adjugate3(b_src)
    if h[2, 2] == 0.0 or not np.all(np.isfinite(h)):
        raise DegenerateMappingError("homography cannot be normalised")

    h = h / h[2, 2]
    if not np.all(np.isfinite(h)):
        raise DegenerateMappingError("homography has non-finite entries")
    return h


def apply_homography(h: np.ndarray, points) -> np.ndarray:
    """Map Nx2 points through ``h`` with the perspective divide."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    homog = np.hstack([pts, np.ones((pts.shape[0], 1))])
    mapped = homog @ np.asarray(h, dtype=np.float64).T
    return mapped[:, :2] / mapped[:, 2:3]


def to_render_matrix(h: np.ndarray) -> Tuple[float, ...]:
    """Embed a 3x3 homography into a column-major 4x4 perspective matrix.

    The z row and column are identity, so content drawn at z=0 with its
    origin at the top-left corner is warped exactly as ``h`` prescribes.
    """
    return (
        float(h[0, 0]), float(h[1, 0]), 0.0, float(h[2, 0]),
        float(h[0, 1]), float(h[1, 1]), 0.0, float(h[2, 1]),
        0.0, 0.0, 1.0, 0.0,
        float(h[0, 2]), float(h[1, 2]), 0.0, float(h[2, 2]),
    )


def render_matrix_to_array(values: Sequence[float]) -> np.ndarray:
    """Row-major 4x4 array view of a column-major 16-entry render matrix."""
    if len(values) != 16:
        raise ValueError(f"expected 16 values, got {len(values)}")
    return np.asarray(values, dtype=np.float64).reshape(4, 4).T


def render_matrix_to_css(values: Iterable[float]) -> str:
    """Format a render matrix as a CSS ``matrix3d(...)`` transform."""
    return "matrix3d(" + ",".join(repr(float(v)) for v in values) + ")"
