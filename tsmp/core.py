# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import math

import numpy as np
from numba import njit, prange
from scipy.fft import irfft, next_fast_len, rfft

from . import config


class InputShapeError(ValueError):
    """
    Raised when a time series or query is not vector-like (or matrix-like where a
    multi-dimensional input is expected), or when the query is longer than the
    reference time series
    """

    pass


class ParameterError(ValueError):
    """
    Raised when a numerical parameter (window size, bit size, motif counts) is
    outside of its valid range
    """

    pass


def rolling_window(a, window):
    """
    Use strides to generate rolling/sliding windows for a numpy array.

    Parameters
    ----------
    a : numpy.ndarray
        numpy array

    window : int
        Size of the rolling window

    Returns
    -------
    output : numpy.ndarray
        This will be a new view of the original input array.
    """
    a = np.asarray(a)
    shape = a.shape[:-1] + (a.shape[-1] - window + 1, window)
    strides = a.strides + (a.strides[-1],)

    return np.lib.stride_tricks.as_strided(a, shape=shape, strides=strides)


def z_norm(a, axis=0, threshold=None):
    """
    Calculate the z-normalized input array `a` by subtracting the mean and
    dividing by the standard deviation along a given axis.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    axis : int, default 0
        NumPy array axis

    threshold : float, default None
        A non-nan std value being less than `threshold` will be replaced with 1.0.
        When `None`, this defaults to `config.TSMP_EPS`.

    Returns
    -------
    output : numpy.ndarray
        An array with z-normalized values computed along a specified axis.
    """
    if threshold is None:
        threshold = config.TSMP_EPS

    std = np.std(a, axis, keepdims=True)
    std_lt = np.less(
        std, threshold, out=np.zeros_like(std, dtype=bool), where=~np.isnan(std)
    )
    std[std_lt] = 1.0

    return (a - np.mean(a, axis, keepdims=True)) / std


def check_dtype(a, dtype=np.float64):  # pragma: no cover
    """
    Check if the array type of `a` is of type specified by `dtype` parameter.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    dtype : dtype, default np.float64
        NumPy `dtype`

    Returns
    -------
    None

    Raises
    ------
    TypeError
        If the array type does not match `dtype`
    """
    if dtype is int:
        dtype = np.int64
    if dtype is float:
        dtype = np.float64
    if dtype is bool:
        dtype = np.bool_
    if not np.issubdtype(a.dtype, dtype):
        msg = f"{dtype} dtype expected but found {a.dtype} in input array\n"
        msg += "Please change your input `dtype` with `.astype(dtype)`"
        raise TypeError(msg)

    return True


def check_series(T, name="T"):
    """
    Convert a vector-like input into a (copied) 1-D `numpy.ndarray`

    A column or row matrix (i.e., a 2-D array where only one axis is longer than
    one) is flattened.

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    name : str, default "T"
        The name of the input, used in error messages

    Returns
    -------
    T : numpy.ndarray
        A 1-D copy of the input

    Raises
    ------
    InputShapeError
        If the input is neither a vector nor a single column/row matrix
    """
    try:
        T = np.array(T, copy=True)
    except (TypeError, ValueError) as e:
        raise InputShapeError(f"`{name}` must be a vector or a column matrix") from e

    if T.ndim == 2 and min(T.shape) == 1:
        T = T.flatten()

    if T.ndim != 1:
        raise InputShapeError(
            f"`{name}` is {T.ndim}-dimensional and must be a vector or a column "
            "matrix. Unknown type of data."
        )
    check_dtype(T)

    return T


def check_multi_series(T, name="T"):
    """
    Convert a matrix-like input into a (copied) 2-D `numpy.ndarray` with one time
    series per row

    A matrix with more rows than columns is assumed to hold one time series per
    column and is transposed. A vector is treated as a single time series.

    Parameters
    ----------
    T : numpy.ndarray
        Multi-dimensional time series or sequence

    name : str, default "T"
        The name of the input, used in error messages

    Returns
    -------
    T : numpy.ndarray
        A 2-D copy of the input with shape `(d, n)`

    Raises
    ------
    InputShapeError
        If the input is neither a vector nor a matrix
    """
    try:
        T = np.array(T, copy=True)
    except (TypeError, ValueError) as e:
        raise InputShapeError(f"`{name}` must be a vector or a matrix") from e

    if T.ndim == 1:
        T = T[np.newaxis, :]

    if T.ndim != 2:
        raise InputShapeError(
            f"`{name}` is {T.ndim}-dimensional and must be a vector or a matrix. "
            "Unknown type of data."
        )

    if T.shape[0] > T.shape[1]:
        T = np.ascontiguousarray(T.T)
    check_dtype(T)

    return T


def are_distances_too_small(a, threshold=None):  # pragma: no cover
    """
    Check the distance values from a matrix profile.

    If the finite values are smaller than the threshold then it could suggest that
    the time series consists of exact repetitions only.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    threshold : float, default None
        Minimum value in which to compare the matrix profile to. When `None`, this
        defaults to `config.TSMP_SMALL_DISTANCE_THRESHOLD`.

    Returns
    -------
    output : bool
        This is `True` if the matrix profile distances are all below the
        threshold and `False` otherwise.
    """
    if threshold is None:
        threshold = config.TSMP_SMALL_DISTANCE_THRESHOLD

    a = a[np.isfinite(a)]
    if a.shape[0] == 0:
        return False

    if a.mean() < threshold or np.all(a < threshold):
        return True

    return False


def get_excl_zone(m, ratio, join=False):
    """
    Compute the half width of the exclusion zone

    Parameters
    ----------
    m : int
        Window size

    ratio : float
        Size of the exclusion zone relative to the window size

    join : bool, default False
        Set to `True` when comparing two distinct time series, in which case there
        are no trivial matches and the exclusion zone is zero

    Returns
    -------
    excl_zone : int
        All positions `j` with `abs(i - j) <= excl_zone` are trivial matches of `i`
    """
    if join:
        return 0

    # The epsilon nudges exact halves upward
    return int(np.round(m * ratio + config.TSMP_EPS))


def check_window_size(m, max_size=None):
    """
    Check the window size and ensure that it is greater than or equal to
    `config.TSMP_MIN_WINDOW_SIZE` and, if `max_size` is provided, ensure that the
    window size is less than or equal to the `max_size`.

    Parameters
    ----------
    m : int
        Window size

    max_size : int, default None
        The maximum window size allowed

    Returns
    -------
    None

    Raises
    ------
    ParameterError
        If the window size is outside of its valid range
    """
    min_size = config.TSMP_MIN_WINDOW_SIZE
    if m < min_size:
        raise ParameterError(f"`window_size` must be at least {min_size}.")

    if max_size is not None and m > max_size:
        raise ParameterError(
            "Time series is too short relative to desired window size. "
            f"The window size must be less than or equal to {max_size}"
        )


def compute_mean_std(T, m):
    """
    Compute the sliding mean and (population) standard deviation for the array `T`
    with a window size of `m`

    Both are obtained from cumulative sums in a single O(n) pass. The series is
    centered on its global mean first in order to limit the cancellation error of
    the `E[x^2] - E[x]^2` variance formula.

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence. All values must be finite.

    m : int
        Window size

    Returns
    -------
    M_T : numpy.ndarray
        Sliding mean

    Σ_T : numpy.ndarray
        Sliding standard deviation

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table II
    """
    T = np.asarray(T, dtype=np.float64)
    if T.ndim != 1:  # pragma: no cover
        raise InputShapeError("T has to be one dimensional!")

    shift = np.mean(T)
    T_centered = T - shift

    cumsum = np.empty(T.shape[0] + 1, dtype=np.float64)
    cumsum[0] = 0.0
    np.cumsum(T_centered, out=cumsum[1:])

    cumsum_sq = np.empty(T.shape[0] + 1, dtype=np.float64)
    cumsum_sq[0] = 0.0
    np.cumsum(T_centered * T_centered, out=cumsum_sq[1:])

    M_T = (cumsum[m:] - cumsum[:-m]) / m
    var = (cumsum_sq[m:] - cumsum_sq[:-m]) / m - M_T * M_T
    var[var < 0.0] = 0.0

    return M_T + shift, np.sqrt(var)


@njit(parallel=True, fastmath=config.TSMP_FASTMATH_FLAGS)
def _rolling_isconstant(a, w):
    """
    Compute the rolling isconstant for 1-D array.

    This is accomplished by comparing the min and max within each window and
    assigning `True` when the min and max are equal and `False` otherwise.

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : int
        The rolling window size

    Returns
    -------
    output : numpy.ndarray
        Rolling window isconstant.
    """
    l = a.shape[0] - w + 1
    out = np.empty(l)
    for i in prange(l):
        out[i] = np.ptp(a[i : i + w])

    return out == 0


def rolling_isinvalid(a, w):
    """
    Determine whether each rolling window contains at least one `np.nan`/`np.inf`

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : int
        The length of the rolling window

    Returns
    -------
    output : numpy.ndarray
        A boolean array of length `a.shape[0] - w + 1`
    """
    counts = np.zeros(a.shape[0] + 1, dtype=np.int64)
    np.cumsum(~np.isfinite(a), out=counts[1:])

    return (counts[w:] - counts[:-w]) > 0


def preprocess(T, m, eps=None):
    """
    Creates a copy of the time series where all NaN and inf values are replaced
    with zero and computes the rolling statistics needed for z-normalized distances

    Every subsequence that contains at least one NaN or inf value is flagged in
    `T_subseq_isinvalid`. A subsequence is valid for distance computations when it
    is not invalid and not degenerate, i.e. its standard deviation is at least
    `eps` and it is not exactly constant.

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    eps : float, default None
        The standard deviation threshold for degenerate windows. When `None`, this
        defaults to `config.TSMP_EPS`.

    Returns
    -------
    T : numpy.ndarray
        Modified time series

    M_T : numpy.ndarray
        Rolling mean

    Σ_T : numpy.ndarray
        Rolling standard deviation

    T_subseq_isinvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` contains a
        `np.nan`/`np.inf` value (True)

    T_subseq_isvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` can take part in
        a distance computation (True)
    """
    if eps is None:
        eps = config.TSMP_EPS

    T = check_series(T)
    check_window_size(m, max_size=T.shape[0])

    T_subseq_isinvalid = rolling_isinvalid(T, m)
    T[~np.isfinite(T)] = 0.0

    M_T, Σ_T = compute_mean_std(T, m)
    T_subseq_isdegenerate = (Σ_T < eps) | _rolling_isconstant(T, m)
    T_subseq_isvalid = ~(T_subseq_isinvalid | T_subseq_isdegenerate)

    return T, M_T, Σ_T, T_subseq_isinvalid, T_subseq_isvalid


@njit(fastmath=config.TSMP_FASTMATH_FLAGS)
def _calculate_squared_distance(
    m, QT, μ_Q, σ_Q, M_T, Σ_T, Q_subseq_isvalid, T_subseq_isvalid, denom_threshold
):
    """
    Compute a single squared z-normalized distance given all scalar inputs.

    Parameters
    ----------
    m : int
        Window size

    QT : float
        Pre-computed dot product between `Q` and the ith subsequence in `T`, each with
        length `m`

    μ_Q : float
        Mean of `Q`

    σ_Q : float
        Standard deviation of `Q`

    M_T : float
        Mean of the ith subsequence in `T`

    Σ_T : float
        Standard deviation of the ith subsequence in `T`

    Q_subseq_isvalid : bool
        Whether `Q` is neither invalid nor degenerate

    T_subseq_isvalid : bool
        Whether the ith subsequence in `T` is neither invalid nor degenerate

    denom_threshold : float
        Lower bound for the denominator of the Pearson correlation

    Returns
    -------
    D_squared : float
        Squared distance. This is `np.inf` whenever either subsequence is not valid
        or the arithmetic did not produce a finite value.

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Equation on Page 4
    """
    if not Q_subseq_isvalid or not T_subseq_isvalid:
        return np.inf

    denom = (σ_Q * Σ_T) * m
    denom = max(denom, denom_threshold)

    ρ = (QT - (μ_Q * M_T) * m) / denom
    ρ = min(ρ, 1.0)

    D_squared = 2 * m * (1.0 - ρ)
    if not np.isfinite(D_squared):
        return np.inf

    return D_squared


@njit(fastmath=config.TSMP_FASTMATH_FLAGS)
def _calculate_squared_distance_profile(
    m, QT, μ_Q, σ_Q, M_T, Σ_T, Q_subseq_isvalid, T_subseq_isvalid, denom_threshold
):
    """
    Compute the squared distance profile

    Parameters
    ----------
    m : int
        Window size

    QT : numpy.ndarray
        Dot product between `Q` and `T`

    μ_Q : float
        Mean of `Q`

    σ_Q : float
        Standard deviation of `Q`

    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    Q_subseq_isvalid : bool
        Whether `Q` is neither invalid nor degenerate

    T_subseq_isvalid : numpy.ndarray
        Whether each subsequence in `T` is neither invalid nor degenerate

    denom_threshold : float
        Lower bound for the denominator of the Pearson correlation

    Returns
    -------
    D_squared : numpy.ndarray
        Squared distance profile
    """
    k = M_T.shape[0]
    D_squared = np.empty(k, dtype=np.float64)

    for i in range(k):
        D_squared[i] = _calculate_squared_distance(
            m,
            QT[i],
            μ_Q,
            σ_Q,
            M_T[i],
            Σ_T[i],
            Q_subseq_isvalid,
            T_subseq_isvalid[i],
            denom_threshold,
        )

    return D_squared


def sliding_dot_product(Q, T_fft, n_fft):
    """
    Use the pre-computed spectrum of `T` to calculate the sliding window dot product

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence

    T_fft : numpy.ndarray
        The real FFT of the (zero-filled) time series, see `mass_pre`

    n_fft : int
        The FFT length used for `T_fft`. It must not be smaller than `len(T)`.

    Returns
    -------
    output : numpy.ndarray
        Sliding dot product between `Q` and every subsequence of `T`. Its length is
        `n_fft - m + 1` and only the first `len(T) - m + 1` values are meaningful.

    Notes
    -----
    The circular cross-correlation `irfft(T_fft * conj(Q_fft))` never wraps around
    for the valid lags because `Q` is zero padded to `n_fft >= len(T)`.
    """
    m = Q.shape[0]
    Q_fft = rfft(Q, n_fft)
    QT = irfft(T_fft * np.conj(Q_fft), n_fft)

    return QT[: n_fft - m + 1]


def mass_pre(T, m, eps=None):
    """
    Precompute everything that MASS needs about `T` so that arbitrary query windows
    can be compared against all subsequences of `T` in O(n log n)

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    eps : float, default None
        The standard deviation threshold for degenerate windows. When `None`, this
        defaults to `config.TSMP_EPS`.

    Returns
    -------
    T : numpy.ndarray
        Modified (zero-filled) time series

    T_fft : numpy.ndarray
        The real FFT of `T`

    n_fft : int
        The FFT length

    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    T_subseq_isinvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` contains a
        `np.nan`/`np.inf` value (True)

    T_subseq_isvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T` can take part in
        a distance computation (True)
    """
    T, M_T, Σ_T, T_subseq_isinvalid, T_subseq_isvalid = preprocess(T, m, eps=eps)
    n_fft = next_fast_len(T.shape[0], real=True)
    T_fft = rfft(T, n_fft)

    return T, T_fft, n_fft, M_T, Σ_T, T_subseq_isinvalid, T_subseq_isvalid


def _mass(
    Q,
    T_fft,
    n_fft,
    μ_Q,
    σ_Q,
    Q_subseq_isvalid,
    M_T,
    Σ_T,
    T_subseq_isvalid,
    denom_threshold=None,
):
    """
    Compute the squared distance profile of `Q` using the MASS algorithm with the
    precomputed outputs of `mass_pre`

    Parameters
    ----------
    Q : numpy.ndarray
        Query subsequence (finite values only)

    T_fft : numpy.ndarray
        The real FFT of the time series

    n_fft : int
        The FFT length

    μ_Q : float
        The scalar mean of `Q`

    σ_Q : float
        The scalar standard deviation of `Q`

    Q_subseq_isvalid : bool
        Whether `Q` is neither invalid nor degenerate

    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    T_subseq_isvalid : numpy.ndarray
        Whether each subsequence in `T` is neither invalid nor degenerate

    denom_threshold : float, default None
        Lower bound for the denominator of the Pearson correlation. When `None`,
        this defaults to `config.TSMP_DENOM_THRESHOLD`.

    Returns
    -------
    D_squared : numpy.ndarray
        Squared distance profile

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table II
    """
    if denom_threshold is None:
        denom_threshold = config.TSMP_DENOM_THRESHOLD

    m = Q.shape[0]
    l = M_T.shape[0]
    if not Q_subseq_isvalid:
        return np.full(l, np.inf, dtype=np.float64)

    QT = sliding_dot_product(Q, T_fft, n_fft)[:l]

    return _calculate_squared_distance_profile(
        m,
        QT,
        μ_Q,
        σ_Q,
        M_T,
        Σ_T,
        Q_subseq_isvalid,
        T_subseq_isvalid,
        denom_threshold,
    )


def mass(Q, T):
    """
    Compute the z-normalized distance profile of `Q` against every subsequence of
    `T` using the MASS algorithm

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence.

    T : numpy.ndarray
        Time series or sequence.

    Returns
    -------
    distance_profile : numpy.ndarray
        Distance profile. Subsequences that contain `np.nan`/`np.inf` or that have
        a (near) zero standard deviation have a distance of `np.inf`.

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> tsmp.mass(
    ...     np.array([-11.1, 23.4, 79.5, 1001.0]),
    ...     np.array([584., -11., 23., 79., 1001., 0., -19.]))
    array([3.18792463e+00, 1.11297393e-03, 3.23874018e+00, 3.34470195e+00])
    """
    Q = check_series(Q, "Q")
    T = check_series(T, "T")
    m = Q.shape[0]

    if m > T.shape[0]:
        raise InputShapeError(
            f"The length of `Q` ({m}) must be less than or equal to "
            f"the length of `T` ({T.shape[0]}). "
        )

    T, T_fft, n_fft, M_T, Σ_T, _, T_subseq_isvalid = mass_pre(T, m)
    Q, μ_Q, σ_Q, _, Q_subseq_isvalid = preprocess(Q, m)

    D_squared = _mass(
        Q,
        T_fft,
        n_fft,
        μ_Q[0],
        σ_Q[0],
        Q_subseq_isvalid[0],
        M_T,
        Σ_T,
        T_subseq_isvalid,
    )

    return np.sqrt(D_squared)


@njit(fastmath=config.TSMP_FASTMATH_FLAGS)
def _apply_exclusion_zone(a, idx, excl_zone, val):
    """
    Apply an exclusion zone to an array (inplace), i.e. set all values
    to `val` in a window around a given index.

    All values in a in [idx - excl_zone, idx + excl_zone] (endpoints included)
    will be set to `val`.

    Parameters
    ----------
    a : numpy.ndarray
        The array you want to apply the exclusion zone to

    idx : int
        The index around which the window should be centered

    excl_zone : int
        Size of the exclusion zone.

    val : float or bool
        The elements within the exclusion zone will be set to this value

    Returns
    -------
    None
    """
    zone_start = max(0, idx - excl_zone)
    zone_stop = min(a.shape[-1], idx + excl_zone)
    a[..., zone_start : zone_stop + 1] = val


def apply_exclusion_zone(a, idx, excl_zone, val):
    """
    Apply an exclusion zone to an array (inplace), i.e. set all values
    to `val` in a window around a given index.

    All values in a in [idx - excl_zone, idx + excl_zone] (endpoints included)
    will be set to `val`. This is a convenience wrapper around the Numba JIT-compiled
    `_apply_exclusion_zone` function.

    Parameters
    ----------
    a : numpy.ndarray
        The array you want to apply the exclusion zone to

    idx : int
        The index around which the window should be centered

    excl_zone : int
        Size of the exclusion zone.

    val : float or bool
        The elements within the exclusion zone will be set to this value

    Returns
    -------
    None
    """
    check_dtype(a, dtype=type(val))
    _apply_exclusion_zone(a, int(idx), int(excl_zone), val)


def get_pre_scrimp_step(m, ratio):
    """
    Compute the PRE-SCRIMP sampling interval

    Parameters
    ----------
    m : int
        Window size

    ratio : float
        Sampling interval relative to the window size

    Returns
    -------
    s : int
        The sampling interval (at least one)
    """
    return max(1, int(math.floor(m * ratio + config.TSMP_EPS)))
