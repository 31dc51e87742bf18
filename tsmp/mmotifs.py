# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging
import warnings
from functools import lru_cache

import numpy as np
from scipy.stats import norm

from . import core
from .results import MultiMatrixProfile, MultiMotif

logger = logging.getLogger(__name__)


@lru_cache()
def _inverse_norm(n_bit=4):  # pragma: no cover
    """
    Generate bin edges from an inverse normal distribution

    This distribution is best suited for z-normalized time series data

    Parameters
    ----------
    n_bit : int, default 4
        The number of bits to be used in generating the inverse normal distribution

    Returns
    -------
    out : numpy.ndarray
        Array of bin edges that can be used for data discretization
    """
    return norm.ppf(np.arange(1, (2**n_bit)) / (2**n_bit))


def _discretize(a, bins, right=True):  # pragma: no cover
    """
    Discretize each row of the input array

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    bins : numpy.ndarray
        The bin edges used to discretize `a`

    right : bool, default True
        Indicates whether the intervals for binning include the right or the left bin
        edge.

    Returns
    -------
    out : numpy.ndarray
        Discretized array
    """
    return np.digitize(a, bins, right=right)


def _subspace(D, k):
    """
    Return the `k + 1` dimensions with the smallest (discretized) distance

    Parameters
    ----------
    D : numpy.ndarray
        One distance per dimension

    k : int
        The (zero-based) subspace size

    Returns
    -------
    S : numpy.ndarray
        The dimensions in ascending distance order
    """
    return D.argsort(kind="mergesort")[: k + 1]


def _mdl(disc_subseqs, disc_neighbors, S, n_bit=4):
    """
    Compute the number of bits needed to compress one array with another
    using the minimum description length (MDL)

    Parameters
    ----------
    disc_subseqs : numpy.ndarray
        The discretized array to be compressed

    disc_neighbors : numpy.ndarray
        The discretized array that will be used as a hypothesis for compression

    S : numpy.ndarray
        An array that contains the `k`th-dimensional subspace to be used

    n_bit : int, default 4
        The number of bits to use for computing the bit size

    Returns
    -------
    bit_size : float
        The total number of bits computed from MDL for representing both input arrays
    """
    ndim = disc_subseqs.shape[0]
    sub_dims, m = disc_subseqs[S].shape

    n_val = len(np.unique(disc_subseqs[S] - disc_neighbors[S]))
    bit_size = n_bit * (2 * ndim * m - sub_dims * m)
    bit_size = bit_size + sub_dims * m * np.log2(n_val) + n_val * n_bit

    return bit_size


def get_bit_save(motif_1, motif_2, k, n_bit=4):
    """
    Estimate the number of bits needed to encode a pair of multi-dimensional
    subsequences when the best `k + 1` dimensions of one are encoded with the other

    Parameters
    ----------
    motif_1 : numpy.ndarray
        The first multi-dimensional subsequence with shape `(d, m)`

    motif_2 : numpy.ndarray
        The second multi-dimensional subsequence with shape `(d, m)`

    k : int
        The (zero-based) subspace size

    n_bit : int, default 4
        The number of bits used for discretization and for computing the bit size

    Returns
    -------
    bit_size : float
        The total number of bits

    S : numpy.ndarray
        The `k + 1` dimensions used for the compression

    Notes
    -----
    `DOI: 10.1109/ICDM.2017.66 \
    <https://www.cs.ucr.edu/~eamonn/Motif_Discovery_ICDM.pdf>`__

    See Section IV C
    """
    bins = _inverse_norm(n_bit)
    disc_1 = _discretize(core.z_norm(motif_1, axis=1), bins)
    disc_2 = _discretize(core.z_norm(motif_2, axis=1), bins)

    D = np.linalg.norm(disc_1 - disc_2, axis=1)
    S = _subspace(D, k)

    return _mdl(disc_1, disc_2, S, n_bit=n_bit), S


def find_multi_motif(mp, T, n_motifs=3, n_bit=4, exclusion_zone=None):
    """
    Discover the top motifs of a multi-dimensional matrix profile without any
    constraint on the dimensions

    For every candidate subspace size, the best pair is compressed with the
    minimum description length (MDL) and the subspace with the fewest bits wins.
    The search stops as soon as no pair can be compressed below the cost of
    encoding both subsequences independently.

    After a motif is found, the exclusion zones around both the motif index and
    its nearest neighbor are removed from every subspace of the working matrix
    profile. Later motifs therefore never fall within the exclusion zone of either
    member of an earlier pair, which can yield different motifs than suppressing
    the motif index alone.

    Parameters
    ----------
    mp : MultiMatrixProfile
        The multi-dimensional matrix profile of `T`. It is not modified.

    T : numpy.ndarray
        The multi-dimensional time series with shape `(d, n)` (or `(n, d)`)

    n_motifs : int, default 3
        The maximum number of motifs to return. `np.inf` searches until the
        matrix profile is exhausted.

    n_bit : int, default 4
        The number of bits used for discretization and for computing the bit size

    exclusion_zone : float, default None
        Size of the exclusion zone relative to the window size. When `None`, the
        exclusion zone ratio of `mp` is used.

    Returns
    -------
    out : MultiMatrixProfile
        A copy of `mp` with `kind == Kind.MULTI_MOTIF` and a `MultiMotif` attached

    Raises
    ------
    TypeError
        If `mp` is not a `MultiMatrixProfile`

    InputShapeError
        If `T` is shorter than required by `mp`

    ParameterError
        If `n_bit < 2` or `n_motifs < 1`

    Notes
    -----
    `DOI: 10.1109/ICDM.2017.66 \
    <https://www.cs.ucr.edu/~eamonn/Motif_Discovery_ICDM.pdf>`__

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> T = np.random.rand(3, 200)
    >>> mp = tsmp.find_multi_motif(tsmp.mstamp(T, m=30), T)
    >>> mp.kind
    <Kind.MULTI_MOTIF: 'MultiMotif'>
    """
    if not isinstance(mp, MultiMatrixProfile):
        raise TypeError("First argument must be a `MultiMatrixProfile`.")
    if n_bit < 2:
        raise core.ParameterError("`n_bit` must be at least `2`.")
    if n_motifs < 1:
        raise core.ParameterError("`n_motifs` must be at least 1.")

    m = mp.m
    if exclusion_zone is None:
        exclusion_zone = mp.ez
    excl_zone = core.get_excl_zone(m, exclusion_zone)

    T = core.check_multi_series(T)
    T[~np.isfinite(T)] = 0.0
    if T.shape[1] < len(mp) + m - 1:
        raise core.InputShapeError(
            f"`T` has length {T.shape[1]} but the matrix profile requires length "
            f"{len(mp) + m - 1}"
        )
    if T.shape[0] != mp.n_dim:
        warnings.warn("`T` dimensions are different from matrix profile.")

    # Private working copy with one row per subspace size
    P = mp.P_.T.copy()
    I = mp.I_.T
    d, l = P.shape
    if np.isinf(n_motifs):
        n_motifs = l
    base_bit = n_bit * d * m * 2

    motif_idx = []
    motif_nn = []
    motif_dim = []
    motif_mdl = []
    for i in range(int(n_motifs)):
        logger.info(f"Searching for motif ({i + 1}).")

        idx_1 = np.argmin(P, axis=1)
        if np.any(np.isinf(P[np.arange(d), idx_1])):
            break
        idx_2 = I[np.arange(d), idx_1]

        bit_sz = np.empty(d, dtype=np.float64)
        dims = []
        for k in range(d):
            bit_sz[k], S = get_bit_save(
                T[:, idx_1[k] : idx_1[k] + m], T[:, idx_2[k] : idx_2[k] + m], k, n_bit
            )
            dims.append(S)

        best = np.argmin(bit_sz)
        if bit_sz[best] > base_bit:
            if i == 0:
                logger.info("No motifs found.")
            break

        motif_idx.append(idx_1[best])
        motif_nn.append(idx_2[best])
        motif_dim.append(np.sort(dims[best]))
        motif_mdl.append(bit_sz)

        core._apply_exclusion_zone(P, idx_1[best], excl_zone, np.inf)
        core._apply_exclusion_zone(P, idx_2[best], excl_zone, np.inf)

    if len(motif_idx) > 0:
        logger.info(f"Found {len(motif_idx)} motifs.")

    motif = MultiMotif(motif_idx, motif_nn, motif_dim, motif_mdl)

    return mp.with_motif(motif)
