import warnings

import naive
import numpy as np
import numpy.testing as npt
import pytest

from tsmp import (
    InputShapeError,
    Kind,
    MultiMatrixProfile,
    ParameterError,
    find_multi_motif,
    get_bit_save,
    mstamp,
    tsmp,
)
from tsmp.mmotifs import _discretize, _inverse_norm, _mdl

n_bits = [2, 4, 8]


def planted_motif(d=3, n=300, m=20, p=20, q=120):
    T = np.random.rand(d, n)
    bump = np.sin(np.pi * np.arange(m) / (m - 1))
    for k in range(2):
        T[k] *= 1e-3
        T[k, p : p + m] += bump
        T[k, q : q + m] += bump

    return T


def test_inverse_norm():
    bins = _inverse_norm(2)

    npt.assert_almost_equal(bins, [-0.67448975, 0.0, 0.67448975])


def test_discretize():
    bins = _inverse_norm(2)
    a = np.array([-1.0, bins[0], 0.0, 0.5, 2.0])

    npt.assert_equal(_discretize(a, bins), [0, 0, 1, 2, 3])


def test_mdl():
    disc_subseqs = np.array([[0, 1, 2, 3], [3, 2, 1, 0]])
    disc_neighbors = np.array([[0, 1, 2, 3], [0, 0, 0, 0]])
    S = np.array([0])

    # n_bit * (2 * d * m - |S| * m) + |S| * m * log2(1) + 1 * n_bit
    assert _mdl(disc_subseqs, disc_neighbors, S, n_bit=4) == 4 * 12 + 4


@pytest.mark.parametrize("n_bit", n_bits)
def test_get_bit_save(n_bit):
    d, m = 4, 16
    motif_1 = np.random.rand(d, m)
    motif_2 = np.random.rand(d, m)
    for k in range(d):
        ref_bits, ref_S = naive.get_bit_save(motif_1, motif_2, k, n_bit)
        comp_bits, comp_S = get_bit_save(motif_1, motif_2, k, n_bit)

        npt.assert_almost_equal(ref_bits, comp_bits)
        npt.assert_equal(ref_S, comp_S)


def test_find_multi_motif_planted():
    m, p, q = 20, 20, 120
    T = planted_motif(m=m, p=p, q=q)

    comp = find_multi_motif(mstamp(T, m), T, n_motifs=1)

    assert comp.kind == Kind.MULTI_MOTIF
    assert len(comp.motif) == 1
    idx, nn = comp.motif.motif_idx[0], comp.motif.motif_nn[0]
    assert abs(nn - idx) == q - p
    assert abs(min(idx, nn) - p) < m
    npt.assert_equal(comp.motif.motif_dim[0], [0, 1])
    assert comp.motif.motif_mdl[0].shape == (3,)
    assert np.argmin(comp.motif.motif_mdl[0]) == 1


def test_find_multi_motif_transposed_input():
    m = 20
    T = planted_motif(m=m)
    mp = mstamp(T, m)

    ref = find_multi_motif(mp, T, n_motifs=2)
    comp = find_multi_motif(mp, T.T, n_motifs=2)

    assert ref.motif.motif_idx == comp.motif.motif_idx
    assert ref.motif.motif_nn == comp.motif.motif_nn


def test_find_multi_motif_suppression():
    m = 20
    T = planted_motif(m=m)
    mp = mstamp(T, m)

    comp = find_multi_motif(mp, T, n_motifs=np.inf)

    members = []
    for idx, nn in zip(comp.motif.motif_idx, comp.motif.motif_nn):
        for other in members:
            assert abs(idx - other) > mp.excl_zone
        members.extend([idx, nn])


def test_find_multi_motif_does_not_modify_input():
    m = 20
    T = planted_motif(m=m)
    mp = mstamp(T, m)
    ref_P = mp.P_.copy()

    find_multi_motif(mp, T)

    npt.assert_equal(ref_P, mp.P_)
    assert mp.kind == Kind.MULTI_MATRIX_PROFILE
    assert mp.motif is None


def test_find_multi_motif_all_inf():
    P = np.full((10, 2), np.inf)
    I = np.full((10, 2), -1, dtype=np.int64)
    mp = MultiMatrixProfile(P, I, 4, 0.5, 2)

    comp = find_multi_motif(mp, np.random.rand(2, 13))

    assert len(comp.motif) == 0
    assert comp.kind == Kind.MULTI_MOTIF


def test_find_multi_motif_dimension_mismatch():
    m = 20
    T = planted_motif(m=m)
    mp = mstamp(T, m)

    with pytest.warns(UserWarning):
        find_multi_motif(mp, T[:2], n_motifs=1)


def test_find_multi_motif_too_short():
    m = 20
    T = planted_motif(m=m)
    mp = mstamp(T, m)

    with pytest.raises(InputShapeError):
        find_multi_motif(mp, T[:, :-5])


@pytest.mark.parametrize("kwargs", [{"n_bit": 1}, {"n_motifs": 0}])
def test_find_multi_motif_invalid_parameters(kwargs):
    m = 20
    T = planted_motif(m=m)
    mp = mstamp(T, m)

    with pytest.raises(ParameterError):
        find_multi_motif(mp, T, **kwargs)


def test_find_multi_motif_not_a_multi_matrix_profile():
    T = np.random.rand(64)
    with pytest.raises(TypeError):
        find_multi_motif(tsmp(T, 8), T)


def test_get_bit_save_constant_dimension():
    d, m = 3, 16
    motif_1 = np.random.rand(d, m)
    motif_2 = np.random.rand(d, m)
    motif_1[1] = 2.0
    motif_2[1] = 2.0

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        bits, S = get_bit_save(motif_1, motif_2, 0, 4)

    ref_bits, ref_S = naive.get_bit_save(motif_1, motif_2, 0, 4)
    npt.assert_almost_equal(ref_bits, bits)
    npt.assert_equal(ref_S, S)
