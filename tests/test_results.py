import numpy as np
import numpy.testing as npt
import pytest

from tsmp import InputShapeError, Kind, MatrixProfile, Motif, MultiMatrixProfile
from tsmp.results import MultiMotif, ProfileState


def test_matrix_profile_is_frozen():
    P = np.random.rand(10)
    I = np.arange(10)
    mp = MatrixProfile(P, I, 4, 0.5, 2)

    P[0] = -1.0
    assert mp.P_[0] >= 0.0
    with pytest.raises(ValueError):
        mp.P_[0] = 0.0
    with pytest.raises(ValueError):
        mp.I_[0] = 0
    assert mp.left_P_ is None
    assert not mp.has_left_right
    assert mp.kind == Kind.MATRIX_PROFILE
    assert len(mp) == 10


def test_matrix_profile_with_motif():
    mp = MatrixProfile(np.random.rand(10), np.arange(10), 4, 0.5, 2)
    motif = Motif([(1, 7)], [np.array([4])], [4])

    comp = mp.with_motif(motif)

    assert comp.kind == Kind.MOTIF
    assert comp.motif is motif
    assert mp.kind == Kind.MATRIX_PROFILE
    assert mp.motif is None
    npt.assert_equal(mp.P_, comp.P_)
    assert comp.m == 4
    assert comp.ez == 0.5


def test_motif_record():
    motif = Motif([(np.int64(1), np.int64(7))], [[4, 9]], [4])

    assert motif.motif_idx == [(1, 7)]
    assert isinstance(motif.motif_idx[0][0], int)
    npt.assert_equal(motif.motif_neighbor[0], [4, 9])
    assert len(motif) == 1
    with pytest.raises(ValueError):
        motif.motif_neighbor[0][0] = 0


def test_multi_matrix_profile():
    P = np.random.rand(10, 3)
    I = np.zeros((10, 3), dtype=np.int64)
    mp = MultiMatrixProfile(P, I, 4, 0.5, 2)

    assert mp.n_dim == 3
    assert len(mp) == 10
    assert mp.kind == Kind.MULTI_MATRIX_PROFILE

    motif = MultiMotif([1], [7], [[0, 2]], [[1.0, 2.0, 3.0]])
    comp = mp.with_motif(motif)

    assert comp.kind == Kind.MULTI_MOTIF
    assert mp.kind == Kind.MULTI_MATRIX_PROFILE
    npt.assert_equal(comp.motif.motif_dim[0], [0, 2])


def test_multi_matrix_profile_shape_mismatch():
    with pytest.raises(InputShapeError):
        MultiMatrixProfile(np.random.rand(10, 3), np.zeros((10, 2)), 4, 0.5, 2)

    with pytest.raises(InputShapeError):
        MultiMatrixProfile(np.random.rand(10), np.zeros(10), 4, 0.5, 2)


def test_profile_state_merge():
    skip = np.zeros(4, dtype=bool)
    state = ProfileState(4, skip)
    state.merge(
        np.array([4.0, np.inf, 1.0, 9.0]),
        np.array([2, -1, 0, 0]),
        np.array([np.inf, np.inf, 1.0, 9.0]),
        np.array([-1, -1, 0, 0]),
        np.array([4.0, np.inf, np.inf, np.inf]),
        np.array([2, -1, -1, -1]),
    )
    # Ties keep the current neighbor
    state.merge(
        np.array([1.0, 16.0, 1.0, 9.0]),
        np.array([3, 3, 3, 1]),
        np.array([np.inf, np.inf, 1.0, 9.0]),
        np.array([-1, -1, 1, 1]),
        np.array([1.0, 16.0, np.inf, np.inf]),
        np.array([3, 3, -1, -1]),
    )

    npt.assert_equal(state.P_squared, [1.0, 16.0, 1.0, 9.0])
    npt.assert_equal(state.I, [3, 3, 0, 0])
    npt.assert_equal(state.IL, [-1, -1, 0, 0])
    npt.assert_equal(state.IR, [3, 3, -1, -1])


def test_profile_state_finalize():
    skip = np.array([False, False, True, False])
    state = ProfileState(4, skip)
    state.P_squared[:] = [4.0, 9.0, 1.0, np.inf]
    state.I[:] = [3, 3, 0, -1]

    mp = state.finalize(4, 0.5, 2)

    npt.assert_equal(mp.P_, [2.0, 3.0, np.inf, np.inf])
    npt.assert_equal(mp.I_, [3, 3, 0, -1])
    npt.assert_equal(mp.skip_, skip)
    assert mp.has_left_right
    assert mp.excl_zone == 2

    # The result is detached from the accumulator
    state.P_squared[0] = 0.0
    assert mp.P_[0] == 2.0


def test_profile_state_finalize_left_right():
    skip = np.array([False, True, False, False])
    state = ProfileState(4, skip)
    state.PL_squared[:] = [np.inf, 4.0, 16.0, 1.0]
    state.IL[:] = [-1, 0, 0, 2]
    state.PR_squared[:] = [16.0, 4.0, 1.0, np.inf]
    state.IR[:] = [2, 3, 3, -1]

    mp = state.finalize(4, 0.5, 2)

    npt.assert_equal(mp.left_P_, [np.inf, np.inf, 4.0, 1.0])
    npt.assert_equal(mp.left_I_, [-1, 0, 0, 2])
    npt.assert_equal(mp.right_P_, [4.0, np.inf, 1.0, np.inf])
    npt.assert_equal(mp.right_I_, [2, 3, 3, -1])
