# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging
import time

import numpy as np

from . import config, core
from .results import MultiMatrixProfile

logger = logging.getLogger(__name__)


def _multi_mass(i, T, m, T_fft, n_fft, M_T, Σ_T, T_subseq_isvalid):
    """
    A multi-dimensional wrapper around "Mueen's Algorithm for Similarity Search"
    (MASS) to compute the multi-dimensional distance profile of the subsequence
    that starts at `i`

    Parameters
    ----------
    i : int
        The start of the query subsequence in every dimension of `T`

    T : numpy.ndarray
        The (zero-filled) multi-dimensional time series with shape `(d, n)`

    m : int
        Window size

    T_fft : list
        The real FFT of each dimension of `T`

    n_fft : int
        The FFT length

    M_T : numpy.ndarray
        Sliding mean for each dimension of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation for each dimension of `T`

    T_subseq_isvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in each dimension of
        `T` can take part in a distance computation (True)

    Returns
    -------
    D : numpy.ndarray
        Multi-dimensional distance profile with shape `(d, l)`
    """
    d = T.shape[0]
    l = M_T.shape[1]
    D = np.empty((d, l), dtype=np.float64)

    for k in range(d):
        D[k] = core._mass(
            T[k, i : i + m],
            T_fft[k],
            n_fft,
            M_T[k, i],
            Σ_T[k, i],
            T_subseq_isvalid[k, i],
            M_T[k],
            Σ_T[k],
            T_subseq_isvalid[k],
        )

    return np.sqrt(D)


def mstamp(T, m, exclusion_zone=None):
    """
    Compute the multi-dimensional z-normalized matrix profile

    For every subsequence, the per-dimension distances to every other subsequence
    are sorted across dimensions and averaged cumulatively, so column `k` of the
    result is the matrix profile obtained with the best `k + 1` dimensions.

    Parameters
    ----------
    T : numpy.ndarray
        The multi-dimensional time series with shape `(d, n)` (or `(n, d)`)

    m : int
        Window size

    exclusion_zone : float, default None
        Size of the exclusion zone relative to `m`. When `None`, this defaults to
        `config.TSMP_EXCL_ZONE_RATIO`.

    Returns
    -------
    out : MultiMatrixProfile
        The multi-dimensional matrix profile and matrix profile indices, both with
        shape `(l, d)`

    Raises
    ------
    InputShapeError
        If `T` is not matrix-like

    ParameterError
        If the window size is outside of `[config.TSMP_MIN_WINDOW_SIZE, n // 2]`

    Notes
    -----
    `DOI: 10.1109/ICDM.2017.66 \
    <https://www.cs.ucr.edu/~eamonn/Motif_Discovery_ICDM.pdf>`__

    See mSTAMP Algorithm

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> mp = tsmp.mstamp(np.random.rand(3, 64), m=8)
    >>> mp.P_.shape
    (57, 3)
    """
    if exclusion_zone is None:
        exclusion_zone = config.TSMP_EXCL_ZONE_RATIO

    T = core.check_multi_series(T)
    d, n = T.shape
    core.check_window_size(m, max_size=n // 2)
    excl_zone = core.get_excl_zone(m, exclusion_zone)

    start = time.time()
    l = n - m + 1
    M_T = np.empty((d, l), dtype=np.float64)
    Σ_T = np.empty((d, l), dtype=np.float64)
    T_subseq_isvalid = np.empty((d, l), dtype=bool)
    T_fft = []
    for k in range(d):
        T[k], T_fft_k, n_fft, M_T[k], Σ_T[k], _, T_subseq_isvalid[k] = core.mass_pre(
            T[k], m
        )
        T_fft.append(T_fft_k)

    P = np.full((l, d), np.inf, dtype=np.float64)
    I = np.full((l, d), -1, dtype=np.int64)
    for i in range(l):
        D = _multi_mass(i, T, m, T_fft, n_fft, M_T, Σ_T, T_subseq_isvalid)
        D = np.sort(D, axis=0)
        D = np.cumsum(D, axis=0) / np.arange(1, d + 1)[:, np.newaxis]
        core._apply_exclusion_zone(D, i, excl_zone, np.inf)

        I[i] = np.argmin(D, axis=1)
        P[i] = D[np.arange(d), I[i]]

    I[~np.isfinite(P)] = -1
    logger.info(f"Finished in {time.time() - start:.2f} seconds")

    return MultiMatrixProfile(P, I, m, exclusion_zone, excl_zone)
