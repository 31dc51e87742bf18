# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging
import time

import numpy as np
from numba import njit

from . import config, core
from .results import ProfileState

logger = logging.getLogger(__name__)


@njit(fastmath=config.TSMP_FASTMATH_FLAGS)
def _update_PI(idx, nn, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR):
    """
    Update the squared (left/right) matrix profile at `idx` with the candidate
    neighbor `nn` whenever `D_squared` is strictly smaller

    Parameters
    ----------
    idx : int
        The position to update

    nn : int
        The candidate neighbor of `idx`

    D_squared : float
        The squared distance between `idx` and `nn`

    P_squared : numpy.ndarray
        Squared matrix profile

    I : numpy.ndarray
        Matrix profile indices

    PL_squared : numpy.ndarray
        Squared left matrix profile

    IL : numpy.ndarray
        Left matrix profile indices

    PR_squared : numpy.ndarray
        Squared right matrix profile

    IR : numpy.ndarray
        Right matrix profile indices

    Returns
    -------
    None
    """
    if D_squared < P_squared[idx]:
        P_squared[idx] = D_squared
        I[idx] = nn

    if nn < idx:
        if D_squared < PL_squared[idx]:
            PL_squared[idx] = D_squared
            IL[idx] = nn
    else:
        if D_squared < PR_squared[idx]:
            PR_squared[idx] = D_squared
            IR[idx] = nn


@njit(fastmath=config.TSMP_FASTMATH_FLAGS)
def _prescrimp_anchor(
    T,
    m,
    M_T,
    Σ_T,
    T_subseq_isvalid,
    i,
    squared_distance_profile,
    QT,
    s,
    denom_threshold,
    P_squared,
    I,
    PL_squared,
    IL,
    PR_squared,
    IR,
):
    """
    Compute (Numba JIT-compiled) and update the squared matrix profile with a single
    PRE-SCRIMP anchor

    The exact distance profile of the anchor refines every position, the anchor
    takes its nearest neighbor `nn` and the dot product between the anchor and `nn`
    is then propagated along their diagonal for at most `s - 1` steps in each
    direction.

    Parameters
    ----------
    T : numpy.ndarray
        The (zero-filled) time series or sequence

    m : int
        Window size

    M_T : numpy.ndarray
        Sliding window mean for `T`

    Σ_T : numpy.ndarray
        Sliding window standard deviation for `T`

    T_subseq_isvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` can take part in
        a distance computation (True)

    i : int
        The anchor position

    squared_distance_profile : numpy.ndarray
        The squared distance profile of the anchor with its exclusion zone already
        set to `np.inf`

    QT : numpy.ndarray
        The sliding dot product between the anchor and every subsequence of `T`

    s : int
        The sampling interval

    denom_threshold : float
        Lower bound for the denominator of the Pearson correlation

    P_squared : numpy.ndarray
        Squared matrix profile

    I : numpy.ndarray
        Matrix profile indices

    PL_squared : numpy.ndarray
        Squared left matrix profile

    IL : numpy.ndarray
        Left matrix profile indices

    PR_squared : numpy.ndarray
        Squared right matrix profile

    IR : numpy.ndarray
        Right matrix profile indices

    Returns
    -------
    None

    Notes
    -----
    `DOI: 10.1109/ICDM.2018.00099 \
    <https://www.cs.ucr.edu/~eamonn/SCRIMP_ICDM_camera_ready_updated.pdf>`__

    See Algorithm 2
    """
    l = T.shape[0] - m + 1

    # The anchor's distance profile refines every position and, scanned in
    # ascending order, leaves the first minimum as the anchor's neighbor
    for j in range(l):
        D_squared = squared_distance_profile[j]
        if D_squared < np.inf:
            _update_PI(j, i, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR)
            _update_PI(i, j, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR)

    nn = np.argmin(squared_distance_profile)
    if squared_distance_profile[nn] == np.inf:
        return

    # Forward along the diagonal of (i, nn)
    QT_g = QT[nn]
    for g in range(1, min(s, l - i, l - nn)):
        QT_g = (
            QT_g
            - T[i + g - 1] * T[nn + g - 1]
            + T[i + g + m - 1] * T[nn + g + m - 1]
        )
        D_squared = core._calculate_squared_distance(
            m,
            QT_g,
            M_T[i + g],
            Σ_T[i + g],
            M_T[nn + g],
            Σ_T[nn + g],
            T_subseq_isvalid[i + g],
            T_subseq_isvalid[nn + g],
            denom_threshold,
        )
        _update_PI(
            i + g, nn + g, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR
        )
        _update_PI(
            nn + g, i + g, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR
        )

    # Backward along the same diagonal
    QT_g = QT[nn]
    for g in range(1, min(s, i + 1, nn + 1)):
        QT_g = QT_g - T[i - g + m] * T[nn - g + m] + T[i - g] * T[nn - g]
        D_squared = core._calculate_squared_distance(
            m,
            QT_g,
            M_T[i - g],
            Σ_T[i - g],
            M_T[nn - g],
            Σ_T[nn - g],
            T_subseq_isvalid[i - g],
            T_subseq_isvalid[nn - g],
            denom_threshold,
        )
        _update_PI(
            i - g, nn - g, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR
        )
        _update_PI(
            nn - g, i - g, D_squared, P_squared, I, PL_squared, IL, PR_squared, IR
        )


def get_anchors(l, s):
    """
    Return the PRE-SCRIMP anchor positions `1, 1 + s, 1 + 2s, ...` (below `l`)

    Parameters
    ----------
    l : int
        Matrix profile length

    s : int
        The sampling interval

    Returns
    -------
    anchors : numpy.ndarray
        The anchor positions in ascending order
    """
    return np.arange(1, l, s, dtype=np.int64)


def _prescrimp(
    T,
    T_fft,
    n_fft,
    m,
    M_T,
    Σ_T,
    T_subseq_isvalid,
    anchors,
    s,
    excl_zone,
    state,
    should_stop=None,
    progress=None,
):
    """
    Run PRE-SCRIMP over `anchors` (in order) and update `state` in place

    Parameters
    ----------
    T : numpy.ndarray
        The (zero-filled) time series or sequence

    T_fft : numpy.ndarray
        The real FFT of `T`

    n_fft : int
        The FFT length

    m : int
        Window size

    M_T : numpy.ndarray
        Sliding window mean for `T`

    Σ_T : numpy.ndarray
        Sliding window standard deviation for `T`

    T_subseq_isvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` can take part in
        a distance computation (True)

    anchors : numpy.ndarray
        The anchor positions to process, see `get_anchors`

    s : int
        The sampling interval

    excl_zone : int
        The half width of the exclusion zone

    state : ProfileState
        The accumulator that is updated in place

    should_stop : callable, default None
        Checked before every anchor. When it returns `True` no further anchors are
        processed.

    progress : callable, default None
        Called as `progress(done, total)` after every anchor

    Returns
    -------
    n_done : int
        The number of anchors that were processed
    """
    denom_threshold = config.TSMP_DENOM_THRESHOLD
    l = M_T.shape[0]
    n_done = 0

    for i in anchors:
        if should_stop is not None and should_stop():
            logger.debug(
                f"PRE-SCRIMP stopped after {n_done} of {len(anchors)} anchors"
            )
            break

        QT = core.sliding_dot_product(T[i : i + m], T_fft, n_fft)[:l]
        squared_distance_profile = core._calculate_squared_distance_profile(
            m,
            QT,
            M_T[i],
            Σ_T[i],
            M_T,
            Σ_T,
            T_subseq_isvalid[i],
            T_subseq_isvalid,
            denom_threshold,
        )
        core._apply_exclusion_zone(squared_distance_profile, i, excl_zone, np.inf)

        _prescrimp_anchor(
            T,
            m,
            M_T,
            Σ_T,
            T_subseq_isvalid,
            i,
            squared_distance_profile,
            QT,
            s,
            denom_threshold,
            state.P_squared,
            state.I,
            state.PL_squared,
            state.IL,
            state.PR_squared,
            state.IR,
        )
        n_done += 1

        if progress is not None:
            progress(n_done, len(anchors))

    return n_done


def prescrimp(T, m, exclusion_zone=None, pre_scrimp=None):
    """
    Compute an approximate matrix profile with PRE-SCRIMP (self-join)

    Evenly spaced anchors get an exact distance profile and the nearest neighbor
    of each anchor is extrapolated to the positions around it. The result is an
    upper bound of the exact matrix profile and is the seed that `scrimp` refines.

    Parameters
    ----------
    T : numpy.ndarray
        The time series or sequence for which to compute the matrix profile

    m : int
        Window size

    exclusion_zone : float, default None
        Size of the exclusion zone relative to `m`. When `None`, this defaults to
        `config.TSMP_EXCL_ZONE_RATIO`.

    pre_scrimp : float, default None
        The sampling interval relative to `m`. When `None`, this defaults to
        `config.TSMP_PRE_SCRIMP_RATIO`.

    Returns
    -------
    out : MatrixProfile
        The approximate matrix profile, including the left/right matrix profiles

    Raises
    ------
    ParameterError
        If `pre_scrimp` is not positive or the window size is outside of
        `[config.TSMP_MIN_WINDOW_SIZE, len(T) // 2]`

    Notes
    -----
    `DOI: 10.1109/ICDM.2018.00099 \
    <https://www.cs.ucr.edu/~eamonn/SCRIMP_ICDM_camera_ready_updated.pdf>`__

    See Algorithm 2

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> mp = tsmp.prescrimp(np.random.rand(64), m=8)
    >>> mp.P_.shape
    (57,)
    """
    if exclusion_zone is None:
        exclusion_zone = config.TSMP_EXCL_ZONE_RATIO
    if pre_scrimp is None:
        pre_scrimp = config.TSMP_PRE_SCRIMP_RATIO
    if pre_scrimp <= 0:
        raise core.ParameterError("`pre_scrimp` must be greater than zero.")

    T = core.check_series(T)
    core.check_window_size(m, max_size=T.shape[0] // 2)

    start = time.time()
    T, T_fft, n_fft, M_T, Σ_T, T_subseq_isinvalid, T_subseq_isvalid = core.mass_pre(
        T, m
    )
    excl_zone = core.get_excl_zone(m, exclusion_zone)
    s = core.get_pre_scrimp_step(m, pre_scrimp)

    l = M_T.shape[0]
    state = ProfileState(l, T_subseq_isinvalid)
    _prescrimp(
        T,
        T_fft,
        n_fft,
        m,
        M_T,
        Σ_T,
        T_subseq_isvalid,
        get_anchors(l, s),
        s,
        excl_zone,
        state,
    )
    logger.info(f"PRE-SCRIMP finished in {time.time() - start:.2f} seconds")

    return state.finalize(m, exclusion_zone, excl_zone)
