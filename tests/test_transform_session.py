"""Tests for the TransformSession state machine."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from homography import apply_homography, render_matrix_to_array
from points import Corner, Points
from transform_session import SessionState, TransformSession


@pytest.fixture
def session(qapp):
    return TransformSession()


def _map(session, point):
    m4 = render_matrix_to_array(session.render_matrix)
    out = m4 @ np.array([point[0], point[1], 0.0, 1.0])
    return out[0] / out[3], out[1] / out[3]


def test_starts_uninitialized(session):
    assert session.state is SessionState.UNINITIALIZED
    assert session.render_matrix is None
    assert session.homography is None
    assert session.source_rect is None
    assert session.points == Points.default()
    assert session.recompute() is False


def test_empty_measurement_keeps_uninitialized(session):
    session.resize(0, 100)
    session.resize(200, -1)
    assert session.state is SessionState.UNINITIALIZED
    assert session.render_matrix is None


def test_first_measurement_activates_and_auto_fits(session):
    session.resize(200, 100)
    assert session.state is SessionState.ACTIVE
    assert session.points == Points.rectangle(200, 100)
    assert session.source_rect == Points.rectangle(200, 100)
    np.testing.assert_allclose(session.homography, np.eye(3), atol=1e-12)
    assert session.render_matrix == (
        1.0, 0.0, 0.0, 0.0,
        0.0, 1.0, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
        0.0, 0.0, 0.0, 1.0,
    )


def test_auto_fit_keeps_top_left_pinned(session):
    session.resize(200, 100)
    session.move_corner("top_left", (15, 10))
    session.resize(400, 300)
    pts = session.points
    assert pts.top_left == Corner(15, 10)
    assert pts.top_right == Corner(400, 0)
    assert pts.bottom_right == Corner(400, 300)
    assert pts.bottom_left == Corner(0, 300)


def test_drag_top_right_end_to_end(session):
    session.resize(200, 100)
    session.move_corner("topRight", (180, 20))
    session.recompute()

    x, y = _map(session, (200, 0))
    assert x == pytest.approx(180, abs=1e-6)
    assert y == pytest.approx(20, abs=1e-6)
    x, y = _map(session, (0, 0))
    assert x == pytest.approx(0, abs=1e-9)
    assert y == pytest.approx(0, abs=1e-9)
    for src, dst in [((200, 100), (200, 100)), ((0, 100), (0, 100))]:
        assert _map(session, src) == pytest.approx(dst, abs=1e-6)


def test_move_corner_isolates_other_corners(session):
    session.resize(200, 100)
    before = session.points
    session.move_corner("top_right", Corner(150, -30))
    after = session.points
    assert after.top_right == Corner(150, -30)
    assert after.top_left is before.top_left
    assert after.bottom_right is before.bottom_right
    assert after.bottom_left is before.bottom_left


def test_move_corner_allows_outside_and_fold_over(session):
    session.resize(100, 100)
    session.move_corner("bottom_right", (-50, -50))
    assert session.points.bottom_right == Corner(-50, -50)
    h = session.homography
    np.testing.assert_allclose(apply_homography(h, [(100, 100)]), [[-50, -50]], atol=1e-6)


def test_move_corner_rejects_unknown_name(session):
    with pytest.raises(ValueError):
        session.move_corner("centre", (1, 1))


def test_degenerate_move_keeps_previous_matrix(session):
    session.resize(200, 100)
    session.move_corner("top_right", (180, 20))
    m0 = session.render_matrix
    h0 = session.homography

    degenerate = MagicMock()
    session.degenerateMapping.connect(degenerate)
    # top_right onto the left edge, collinear with top_left and bottom_left
    session.move_corner("top_right", (0, 50))

    assert session.points.top_right == Corner(0, 50)
    assert session.render_matrix == m0
    np.testing.assert_array_equal(session.homography, h0)
    degenerate.assert_called_once()


def test_corner_dragged_onto_another_keeps_matrix(session):
    session.resize(200, 100)
    m0 = session.render_matrix
    session.move_corner("top_right", (0, 0))
    assert session.render_matrix == m0
    # recovers once the quad is valid again
    session.move_corner("top_right", (190, 5))
    assert session.render_matrix != m0


def test_degenerate_before_first_solve_leaves_matrix_empty(qapp):
    collapsed = Points(Corner(0, 0), Corner(0, 0), Corner(0, 0), Corner(0, 0))
    session = TransformSession(points=collapsed, controlled=True)
    session.resize(200, 100)
    assert session.state is SessionState.ACTIVE
    assert session.render_matrix is None


def test_matrix_changed_emitted_once_per_event(session):
    changed = MagicMock()
    session.matrixChanged.connect(changed)
    session.resize(200, 100)
    assert changed.call_count == 1
    session.move_corner("bottom_left", (10, 90))
    assert changed.call_count == 2
    changed.assert_called_with(session.render_matrix)


def test_set_points_replaces_all_and_disables_auto_fit(session):
    session.resize(200, 100)
    new = Points(Corner(10, 10), Corner(190, 0), Corner(200, 100), Corner(0, 90))
    session.set_points(new)
    assert session.points == new
    assert session.auto_fit_enabled is False

    session.resize(400, 200)
    assert session.points == new
    assert session.source_rect == Points.rectangle(400, 200)
    h = session.homography
    np.testing.assert_allclose(
        apply_homography(h, Points.rectangle(400, 200).as_tuples()),
        new.as_tuples(),
        atol=1e-6,
    )


def test_set_points_accepts_storage_shape(session):
    payload = Points.rectangle(50, 60).to_dict()
    session.set_points(payload)
    assert session.points == Points.rectangle(50, 60)


def test_reset_restores_container_rectangle(session):
    session.resize(200, 100)
    session.set_points(Points(Corner(10, 10), Corner(190, 0), Corner(200, 100), Corner(0, 90)))
    session.reset()
    assert session.points == Points.rectangle(200, 100)
    assert session.auto_fit_enabled is True


def test_controlled_session_never_auto_fits(qapp):
    pts = Points(Corner(5, 5), Corner(95, 0), Corner(100, 100), Corner(0, 95))
    session = TransformSession(points=pts, controlled=True)
    session.resize(300, 200)
    assert session.points == pts
    assert session.render_matrix is not None


def test_hydrate_accepts_stored_points(session):
    stored = Points(Corner(1, 2), Corner(190, 3), Corner(180, 95), Corner(4, 99)).to_dict()
    assert session.hydrate(stored) is True
    assert session.hydrated
    assert session.points == Points.from_dict(stored)
    assert session.auto_fit_enabled is False

    session.resize(200, 100)
    assert session.points == Points.from_dict(stored)


def test_hydrate_rejects_partial_points(session):
    assert session.hydrate({"topLeft": {"x": 0, "y": 0}}) is False
    assert session.hydrated
    assert session.points == Points.default()
    assert session.auto_fit_enabled is True


def test_persist_requested_only_after_hydration(session):
    persisted = MagicMock()
    session.persistRequested.connect(persisted)

    session.resize(200, 100)
    persisted.assert_not_called()

    session.hydrate(None)
    session.move_corner("top_right", (180, 20))
    persisted.assert_called_once_with(session.points.to_dict())


def test_controlled_session_does_not_persist(qapp):
    session = TransformSession(points=Points.rectangle(100, 100), controlled=True)
    persisted = MagicMock()
    session.persistRequested.connect(persisted)
    assert session.hydrate(Points.rectangle(10, 10).to_dict()) is False
    session.move_corner("top_left", (5, 5))
    persisted.assert_not_called()
    assert session.points.top_left == Corner(5, 5)


def test_points_changed_carries_points(session):
    seen = MagicMock()
    session.pointsChanged.connect(seen)
    session.resize(200, 100)
    session.move_corner("bottom_left", (3, 97))
    assert seen.call_count == 2
    seen.assert_called_with(session.points)


def test_solved_rect_tracks_matrix_not_latest_resize(qapp):
    session = TransformSession(points=Points.rectangle(100, 100), controlled=True)
    assert session.solved_source_rect is None

    session.resize(100, 100)
    assert session.solved_source_rect == Points.rectangle(100, 100)
    h0 = session.homography

    session.set_points(Points(Corner(0, 0), Corner(50, 0), Corner(100, 0), Corner(0, 100)))
    session.resize(200, 100)

    assert session.source_rect == Points.rectangle(200, 100)
    assert session.solved_source_rect == Points.rectangle(100, 100)
    np.testing.assert_array_equal(session.homography, h0)

    session.move_corner("bottom_right", (200, 100))
    assert session.solved_source_rect == Points.rectangle(200, 100)
