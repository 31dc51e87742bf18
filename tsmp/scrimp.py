# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging
import time

import numba
import numpy as np
from numba import njit, prange

from . import config, core
from .prescrimp import _prescrimp, get_anchors
from .results import ProfileState

logger = logging.getLogger(__name__)


def _get_diags_ranges(ndist_counts, n_split):
    """
    Split a list of diagonals into `n_split` contiguous chunks that hold roughly
    the same number of distances

    Parameters
    ----------
    ndist_counts : numpy.ndarray
        The number of distances computed along each diagonal

    n_split : int
        The number of chunks

    Returns
    -------
    ranges : numpy.ndarray
        The start (column 1) and (exclusive) stop (column 2) indices of each chunk.
        Chunks may be empty.
    """
    n = ndist_counts.shape[0]
    ranges = np.zeros((n_split, 2), dtype=np.int64)
    if n == 0:
        return ranges

    cumsum = np.cumsum(ndist_counts) / np.sum(ndist_counts)
    stops = np.searchsorted(cumsum, np.arange(1, n_split + 1) / n_split) + 1
    stops = np.minimum(stops, n)
    stops[-1] = n

    ranges[1:, 0] = stops[:-1]
    ranges[:, 1] = stops

    return ranges


@njit(fastmath=config.TSMP_FASTMATH_FLAGS)
def _compute_diagonal(
    T,
    m,
    M_T,
    Σ_T,
    T_subseq_isvalid,
    diags,
    diags_start_idx,
    diags_stop_idx,
    thread_idx,
    denom_threshold,
    P_squared,
    I,
    PL_squared,
    IL,
    PR_squared,
    IR,
):
    """
    Compute (Numba JIT-compiled) and update the squared (left/right) matrix profile
    along a range of diagonals using a single thread and avoiding race conditions

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

    diags : numpy.ndarray
        The diagonal offsets (lags) to process, in order

    diags_start_idx : int
        The start index for a range of diagonals to process

    diags_stop_idx : int
        The (exclusive) stop index for a range of diagonals to process

    thread_idx : int
        The thread index, i.e. the row of the per-thread profiles to update

    denom_threshold : float
        Lower bound for the denominator of the Pearson correlation

    P_squared : numpy.ndarray
        Per-thread squared matrix profile

    I : numpy.ndarray
        Per-thread matrix profile indices

    PL_squared : numpy.ndarray
        Per-thread squared left matrix profile

    IL : numpy.ndarray
        Per-thread left matrix profile indices

    PR_squared : numpy.ndarray
        Per-thread squared right matrix profile

    IR : numpy.ndarray
        Per-thread right matrix profile indices

    Returns
    -------
    None
    """
    l = T.shape[0] - m + 1

    for diag_idx in range(diags_start_idx, diags_stop_idx):
        k = diags[diag_idx]
        for i in range(0, l - k):
            if i == 0:
                QT = np.dot(T[0:m], T[k : k + m])
            else:
                QT = QT - T[i - 1] * T[i + k - 1] + T[i + m - 1] * T[i + k + m - 1]

            D_squared = core._calculate_squared_distance(
                m,
                QT,
                M_T[i],
                Σ_T[i],
                M_T[i + k],
                Σ_T[i + k],
                T_subseq_isvalid[i],
                T_subseq_isvalid[i + k],
                denom_threshold,
            )

            # Forward, `i` is a left neighbor of `i + k`
            if D_squared < P_squared[thread_idx, i + k]:
                P_squared[thread_idx, i + k] = D_squared
                I[thread_idx, i + k] = i

            if D_squared < PL_squared[thread_idx, i + k]:
                PL_squared[thread_idx, i + k] = D_squared
                IL[thread_idx, i + k] = i

            # Reverse, `i + k` is a right neighbor of `i`
            if D_squared < P_squared[thread_idx, i]:
                P_squared[thread_idx, i] = D_squared
                I[thread_idx, i] = i + k

            if D_squared < PR_squared[thread_idx, i]:
                PR_squared[thread_idx, i] = D_squared
                IR[thread_idx, i] = i + k


@njit(parallel=True, fastmath=config.TSMP_FASTMATH_FLAGS)
def _scrimp(
    T,
    m,
    M_T,
    Σ_T,
    T_subseq_isvalid,
    diags,
    diags_ranges,
    denom_threshold,
    P_squared,
    I,
    PL_squared,
    IL,
    PR_squared,
    IR,
):
    """
    A Numba JIT-compiled version of SCRIMP (self-join) for parallel computation
    of the squared (left/right) matrix profile along a chunk of diagonals

    Each thread owns a private row of the per-thread profiles. The rows are reset
    before use and reduced in thread order with a strict `<` so that the result is
    identical to processing `diags` sequentially. Only the first
    `diags_ranges.shape[0]` rows are used.

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

    diags : numpy.ndarray
        The diagonal offsets (lags) to process

    diags_ranges : numpy.ndarray
        The start (column 1) and (exclusive) stop (column 2) indices of `diags` for
        each thread

    denom_threshold : float
        Lower bound for the denominator of the Pearson correlation

    P_squared : numpy.ndarray
        Per-thread squared matrix profile buffer with shape `(n_threads, l)`

    I : numpy.ndarray
        Per-thread matrix profile indices buffer

    PL_squared : numpy.ndarray
        Per-thread squared left matrix profile buffer

    IL : numpy.ndarray
        Per-thread left matrix profile indices buffer

    PR_squared : numpy.ndarray
        Per-thread squared right matrix profile buffer

    IR : numpy.ndarray
        Per-thread right matrix profile indices buffer

    Returns
    -------
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

    Notes
    -----
    `DOI: 10.1109/ICDM.2018.00099 \
    <https://www.cs.ucr.edu/~eamonn/SCRIMP_ICDM_camera_ready_updated.pdf>`__

    See Algorithm 1
    """
    n_threads = diags_ranges.shape[0]
    l = T.shape[0] - m + 1

    for thread_idx in prange(n_threads):
        P_squared[thread_idx, :] = np.inf
        I[thread_idx, :] = -1
        PL_squared[thread_idx, :] = np.inf
        IL[thread_idx, :] = -1
        PR_squared[thread_idx, :] = np.inf
        IR[thread_idx, :] = -1

        # Compute and update P, I within a single thread while avoiding race
        # conditions
        _compute_diagonal(
            T,
            m,
            M_T,
            Σ_T,
            T_subseq_isvalid,
            diags,
            diags_ranges[thread_idx, 0],
            diags_ranges[thread_idx, 1],
            thread_idx,
            denom_threshold,
            P_squared,
            I,
            PL_squared,
            IL,
            PR_squared,
            IR,
        )

    # Reduction of results from all threads
    for thread_idx in range(1, n_threads):
        for i in prange(l):
            if P_squared[thread_idx, i] < P_squared[0, i]:
                P_squared[0, i] = P_squared[thread_idx, i]
                I[0, i] = I[thread_idx, i]
            if PL_squared[thread_idx, i] < PL_squared[0, i]:
                PL_squared[0, i] = PL_squared[thread_idx, i]
                IL[0, i] = IL[thread_idx, i]
            if PR_squared[thread_idx, i] < PR_squared[0, i]:
                PR_squared[0, i] = PR_squared[thread_idx, i]
                IR[0, i] = IR[thread_idx, i]

    return P_squared[0], I[0], PL_squared[0], IL[0], PR_squared[0], IR[0]


class scrimp:
    """
    A class to compute an anytime z-normalized matrix profile with SCRIMP++

    PRE-SCRIMP (when enabled) seeds the matrix profile with a fast approximation,
    then SCRIMP refines it one randomly chosen diagonal of the distance matrix at a
    time. Every call to `update` may be stopped early and always returns the best
    matrix profile found so far.

    Parameters
    ----------
    T : numpy.ndarray
        The (reference) time series or sequence for which to compute the matrix
        profile

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The query time series for a join. Joins are validated but not implemented.

    exclusion_zone : float, default None
        Size of the exclusion zone relative to `m`. When `None`, this defaults to
        `config.TSMP_EXCL_ZONE_RATIO`.

    s_size : float, default np.inf
        The maximum number of diagonals that SCRIMP samples

    pre_scrimp : float, default None
        The PRE-SCRIMP sampling interval relative to `m`. `0` disables PRE-SCRIMP.
        When `None`, this defaults to `config.TSMP_PRE_SCRIMP_RATIO`.

    Attributes
    ----------
    P_ : numpy.ndarray
        The best-so-far matrix profile

    I_ : numpy.ndarray
        The best-so-far matrix profile indices

    left_P_ : numpy.ndarray
        The best-so-far left matrix profile

    left_I_ : numpy.ndarray
        The best-so-far left matrix profile indices

    right_P_ : numpy.ndarray
        The best-so-far right matrix profile

    right_I_ : numpy.ndarray
        The best-so-far right matrix profile indices

    n_diags : int
        The number of sampled diagonals

    done : bool
        Whether PRE-SCRIMP and every sampled diagonal have been processed

    Methods
    -------
    update(max_diags=None, timeout=None, stop_event=None, progress=None)
        Process additional anchors/diagonals and return the best-so-far
        `MatrixProfile`

    Notes
    -----
    `DOI: 10.1109/ICDM.2018.00099 \
    <https://www.cs.ucr.edu/~eamonn/SCRIMP_ICDM_camera_ready_updated.pdf>`__

    See Algorithm 1 and Algorithm 2

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> approx_mp = tsmp.scrimp(np.random.rand(64), m=8)
    >>> mp = approx_mp.update(max_diags=10)
    >>> mp.P_.shape
    (57,)
    """

    def __init__(
        self, T, m, T_B=None, exclusion_zone=None, s_size=np.inf, pre_scrimp=None
    ):
        """
        Initialize the `scrimp` object

        Parameters
        ----------
        T : numpy.ndarray
            The (reference) time series or sequence for which to compute the matrix
            profile

        m : int
            Window size

        T_B : numpy.ndarray, default None
            The query time series for a join

        exclusion_zone : float, default None
            Size of the exclusion zone relative to `m`

        s_size : float, default np.inf
            The maximum number of diagonals that SCRIMP samples

        pre_scrimp : float, default None
            The PRE-SCRIMP sampling interval relative to `m`. `0` disables
            PRE-SCRIMP.
        """
        if exclusion_zone is None:
            exclusion_zone = config.TSMP_EXCL_ZONE_RATIO
        if pre_scrimp is None:
            pre_scrimp = config.TSMP_PRE_SCRIMP_RATIO

        T = core.check_series(T)
        if T_B is None:
            query = T
        else:
            query = core.check_series(T_B, "T_B")
            exclusion_zone = 0.0

        if query.shape[0] > T.shape[0]:
            raise core.InputShapeError(
                "Query must be smaller or the same size as reference data."
            )
        core.check_window_size(m, max_size=query.shape[0] // 2)

        if pre_scrimp < 0:
            raise core.ParameterError("`pre_scrimp` must be non-negative.")
        if s_size < 0:
            raise core.ParameterError("`s_size` must be non-negative.")

        if T_B is not None:
            raise NotImplementedError("Join similarity not implemented yet.")

        self._m = m
        self._ez = exclusion_zone
        self._excl_zone = core.get_excl_zone(m, exclusion_zone)
        (
            self._T,
            self._T_fft,
            self._n_fft,
            self._M_T,
            self._Σ_T,
            T_subseq_isinvalid,
            self._T_subseq_isvalid,
        ) = core.mass_pre(T, m)
        self._l = self._M_T.shape[0]
        self._state = ProfileState(self._l, T_subseq_isinvalid)

        if pre_scrimp > 0:
            self._s = core.get_pre_scrimp_step(m, pre_scrimp)
            self._anchors = get_anchors(self._l, self._s)
        else:
            self._s = 0
            self._anchors = np.empty(0, dtype=np.int64)
        self._anchor_idx = 0

        # A single permutation is truncated, so any budget samples a prefix of
        # the diagonals that a larger budget would sample
        diags = np.random.permutation(
            np.arange(self._excl_zone + 1, self._l, dtype=np.int64)
        )
        self._diags = diags[: int(min(s_size, diags.shape[0]))]
        self._diag_idx = 0
        self._n_threads = numba.config.NUMBA_NUM_THREADS
        self._P_squared = np.empty((self._n_threads, self._l), dtype=np.float64)
        self._I = np.empty((self._n_threads, self._l), dtype=np.int64)
        self._PL_squared = np.empty((self._n_threads, self._l), dtype=np.float64)
        self._IL = np.empty((self._n_threads, self._l), dtype=np.int64)
        self._PR_squared = np.empty((self._n_threads, self._l), dtype=np.float64)
        self._IR = np.empty((self._n_threads, self._l), dtype=np.int64)

    @property
    def n_diags(self):
        return self._diags.shape[0]

    @property
    def done(self):
        return (
            self._anchor_idx >= self._anchors.shape[0]
            and self._diag_idx >= self._diags.shape[0]
        )

    def update(self, max_diags=None, timeout=None, stop_event=None, progress=None):
        """
        Continue the computation and return the best-so-far matrix profile

        The computation stops when every anchor and every sampled diagonal has
        been processed, after `max_diags` diagonals, once `timeout` seconds have
        passed, when `stop_event` is set or on a `KeyboardInterrupt`. Stopping
        only ever happens between anchors or between chunks of
        `config.TSMP_DIAGS_PER_CHUNK` diagonals, and in all cases a finalized
        result is returned. Calling `update` again resumes where it stopped.

        Parameters
        ----------
        max_diags : int, default None
            The maximum number of diagonals to process in this call

        timeout : float, default None
            The number of seconds after which no new anchor or chunk is started

        stop_event : threading.Event, default None
            Any object with an `is_set()` method. No new anchor or chunk is started
            once it is set.

        progress : callable, default None
            Called as `progress(done, total)` after every anchor and every chunk,
            where `total` counts the anchors plus the sampled diagonals

        Returns
        -------
        out : MatrixProfile
            The best-so-far matrix profile including the left/right matrix profiles
        """
        start = time.time()
        deadline = None if timeout is None else start + timeout

        def should_stop():
            if stop_event is not None and stop_event.is_set():
                return True
            return deadline is not None and time.time() >= deadline

        n_anchors = self._anchors.shape[0]
        total = n_anchors + self.n_diags

        try:
            if self._anchor_idx < n_anchors:
                offset = self._anchor_idx
                if progress is None:
                    anchor_progress = None
                else:

                    def anchor_progress(done, _):
                        progress(offset + done, total)

                self._anchor_idx += _prescrimp(
                    self._T,
                    self._T_fft,
                    self._n_fft,
                    self._m,
                    self._M_T,
                    self._Σ_T,
                    self._T_subseq_isvalid,
                    self._anchors[self._anchor_idx :],
                    self._s,
                    self._excl_zone,
                    self._state,
                    should_stop=should_stop,
                    progress=anchor_progress,
                )
                logger.info(
                    f"PRE-SCRIMP finished in {time.time() - start:.2f} seconds"
                )

            if self._anchor_idx >= n_anchors:
                self._run_diags(max_diags, should_stop, progress, n_anchors, total)
        except KeyboardInterrupt:
            logger.warning("Interrupted, returning the best-so-far matrix profile")

        logger.info(f"Finished in {time.time() - start:.2f} seconds")

        return self._finalize()

    def _run_diags(self, max_diags, should_stop, progress, n_anchors, total):
        """
        Process the sampled diagonals chunk by chunk until one of the stopping
        conditions of `update` is met
        """
        denom_threshold = config.TSMP_DENOM_THRESHOLD
        chunk_size = config.TSMP_DIAGS_PER_CHUNK
        stop_idx = self.n_diags
        if max_diags is not None:
            stop_idx = min(stop_idx, self._diag_idx + max_diags)

        while self._diag_idx < stop_idx:
            if should_stop():
                logger.debug(
                    f"SCRIMP stopped after {self._diag_idx} of {self.n_diags} diagonals"
                )
                break

            chunk_stop_idx = min(self._diag_idx + chunk_size, stop_idx)
            chunk = self._diags[self._diag_idx : chunk_stop_idx]
            n_threads = min(self._n_threads, chunk.shape[0])
            diags_ranges = _get_diags_ranges(self._l - chunk, n_threads)
            P_squared, I, PL_squared, IL, PR_squared, IR = _scrimp(
                self._T,
                self._m,
                self._M_T,
                self._Σ_T,
                self._T_subseq_isvalid,
                chunk,
                diags_ranges,
                denom_threshold,
                self._P_squared,
                self._I,
                self._PL_squared,
                self._IL,
                self._PR_squared,
                self._IR,
            )
            self._state.merge(P_squared, I, PL_squared, IL, PR_squared, IR)
            self._diag_idx += chunk.shape[0]
            logger.debug(f"SCRIMP processed {self._diag_idx} of {self.n_diags}")

            if progress is not None:
                progress(n_anchors + self._diag_idx, total)

    def _finalize(self):
        """
        Package the accumulator into a `MatrixProfile`
        """
        out = self._state.finalize(self._m, self._ez, self._excl_zone)

        threshold = config.TSMP_SMALL_DISTANCE_THRESHOLD
        if core.are_distances_too_small(out.P_, threshold=threshold):
            logger.warning(f"A large number of values are smaller than {threshold}.")
            logger.warning("The time series may consist of exact repetitions only.")

        return out

    @property
    def P_(self):
        """
        Get the best-so-far matrix profile
        """
        return self._state.finalize(self._m, self._ez, self._excl_zone).P_

    @property
    def I_(self):
        """
        Get the best-so-far matrix profile indices
        """
        return self._state.I.copy()

    @property
    def left_P_(self):
        """
        Get the best-so-far left matrix profile
        """
        return self._state.finalize(self._m, self._ez, self._excl_zone).left_P_

    @property
    def left_I_(self):
        """
        Get the best-so-far left matrix profile indices
        """
        return self._state.IL.copy()

    @property
    def right_P_(self):
        """
        Get the best-so-far right matrix profile
        """
        return self._state.finalize(self._m, self._ez, self._excl_zone).right_P_

    @property
    def right_I_(self):
        """
        Get the best-so-far right matrix profile indices
        """
        return self._state.IR.copy()


def tsmp(
    T,
    m,
    T_B=None,
    exclusion_zone=None,
    s_size=np.inf,
    pre_scrimp=None,
    timeout=None,
    stop_event=None,
    progress=None,
):
    """
    Compute the z-normalized matrix profile with SCRIMP++ (self-join)

    This is a convenience wrapper around the anytime `scrimp` class that runs
    `scrimp.update` until every sampled diagonal is processed or until the
    computation is stopped.

    Parameters
    ----------
    T : numpy.ndarray
        The (reference) time series or sequence for which to compute the matrix
        profile

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The query time series for a join. Joins are validated but not implemented.

    exclusion_zone : float, default None
        Size of the exclusion zone relative to `m`. When `None`, this defaults to
        `config.TSMP_EXCL_ZONE_RATIO`.

    s_size : float, default np.inf
        The maximum number of diagonals that SCRIMP samples

    pre_scrimp : float, default None
        The PRE-SCRIMP sampling interval relative to `m`. `0` disables PRE-SCRIMP.
        When `None`, this defaults to `config.TSMP_PRE_SCRIMP_RATIO`.

    timeout : float, default None
        The number of seconds after which the computation is stopped

    stop_event : threading.Event, default None
        The computation is stopped once this event is set

    progress : callable, default None
        Called as `progress(done, total)` after every anchor and every chunk

    Returns
    -------
    out : MatrixProfile
        The (best-so-far) matrix profile including the left/right matrix profiles

    Raises
    ------
    InputShapeError
        If `T` or `T_B` is not vector-like or if `T_B` is longer than `T`

    ParameterError
        If the window size is outside of `[config.TSMP_MIN_WINDOW_SIZE,
        len(T) // 2]`

    NotImplementedError
        If `T_B` is provided

    Notes
    -----
    `DOI: 10.1109/ICDM.2018.00099 \
    <https://www.cs.ucr.edu/~eamonn/SCRIMP_ICDM_camera_ready_updated.pdf>`__

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> mp = tsmp.tsmp(
    ...     np.array([584., -11., 23., 79., 1001., 0., -19., 3., 21., 1., 4.]),
    ...     m=4)
    >>> mp.I_.shape
    (8,)
    """
    engine = scrimp(
        T,
        m,
        T_B=T_B,
        exclusion_zone=exclusion_zone,
        s_size=s_size,
        pre_scrimp=pre_scrimp,
    )

    return engine.update(timeout=timeout, stop_event=stop_event, progress=progress)
