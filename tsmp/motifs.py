# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging

import numpy as np

from . import core
from .results import MatrixProfile, Motif

logger = logging.getLogger(__name__)


def _find_neighbors(D_squared, excl_zone, n_neighbors):
    """
    Greedily pop up to `n_neighbors` positions from a squared distance profile in
    ascending distance order

    Every accepted neighbor removes all remaining candidates within its own
    exclusion zone (endpoints included).

    Parameters
    ----------
    D_squared : numpy.ndarray
        Squared distance profile where rejected positions are `np.inf`

    excl_zone : int
        The half width of the exclusion zone

    n_neighbors : int
        The maximum number of neighbors

    Returns
    -------
    neighbors : numpy.ndarray
        The neighbor positions in ascending distance order
    """
    candidates = np.argsort(D_squared, kind="mergesort")
    candidates = candidates[np.isfinite(D_squared[candidates])]

    neighbors = []
    while len(neighbors) < n_neighbors and candidates.shape[0] > 0:
        nn = candidates[0]
        neighbors.append(nn)
        candidates = candidates[np.abs(candidates - nn) > excl_zone]

    return np.array(neighbors, dtype=np.int64)


def find_motif(mp, T, n_motifs=3, n_neighbors=10, radius=3, exclusion_zone=None):
    """
    Discover the top motifs of a (univariate) matrix profile

    The best remaining pair of the matrix profile is repeatedly turned into a
    motif, its neighbors within `radius` times the motif distance are collected
    and the whole group is then suppressed so that it can never be selected again.

    Ties in the matrix profile resolve to the lowest index. When a repeated
    pattern is surrounded by a constant signal, every window that partially
    overlaps the pattern also matches its copy exactly, so the reported pair is
    the earliest of these windows rather than the start of the pattern itself.

    Parameters
    ----------
    mp : MatrixProfile
        The (best-so-far) matrix profile of `T`. It is not modified.

    T : numpy.ndarray
        The time series or sequence that `mp` was computed from

    n_motifs : int, default 3
        The maximum number of motifs to return

    n_neighbors : int, default 10
        The maximum number of neighbors to collect for each motif

    radius : float, default 3
        Neighbors must be closer than `radius` times the motif distance

    exclusion_zone : float, default None
        Size of the exclusion zone relative to the window size. When `None`, the
        exclusion zone ratio of `mp` is used.

    Returns
    -------
    out : MatrixProfile
        A copy of `mp` with `kind == Kind.MOTIF` and a `Motif` attached. Fewer motifs
        than requested are returned when the matrix profile is exhausted.

    Raises
    ------
    TypeError
        If `mp` is not a `MatrixProfile`

    InputShapeError
        If `T` does not match the length of `mp`

    ParameterError
        If `n_motifs < 1`, `n_neighbors < 0` or `radius <= 0`

    Examples
    --------
    >>> import tsmp
    >>> import numpy as np
    >>> T = np.random.rand(200)
    >>> mp = tsmp.find_motif(tsmp.tsmp(T, m=30), T, n_motifs=1)
    >>> len(mp.motif)
    1
    """
    if not isinstance(mp, MatrixProfile):
        raise TypeError("First argument must be a `MatrixProfile`.")
    if n_motifs < 1:
        raise core.ParameterError("`n_motifs` must be at least 1.")
    if n_neighbors < 0:
        raise core.ParameterError("`n_neighbors` must be non-negative.")
    if radius <= 0:
        raise core.ParameterError("`radius` must be greater than zero.")

    m = mp.m
    if exclusion_zone is None:
        exclusion_zone = mp.ez
    excl_zone = core.get_excl_zone(m, exclusion_zone)

    T = core.check_series(T)
    if T.shape[0] - m + 1 != len(mp):
        raise core.InputShapeError(
            f"`T` has length {T.shape[0]} but the matrix profile requires length "
            f"{len(mp) + m - 1}"
        )

    T, T_fft, n_fft, M_T, Σ_T, _, T_subseq_isvalid = core.mass_pre(T, m)

    # Private working copy, `mp` itself stays intact
    P = mp.P_.copy()
    I = mp.I_
    suppressed = np.zeros(P.shape[0], dtype=bool)

    motif_idx = []
    motif_neighbor = []
    while len(motif_idx) < n_motifs:
        min_idx = np.argmin(P)
        motif_distance = P[min_idx]
        if not np.isfinite(motif_distance):
            break

        a, b = sorted((int(min_idx), int(I[min_idx])))
        if suppressed[a] or suppressed[b]:
            P[min_idx] = np.inf
            continue

        D_squared = core._mass(
            T[a : a + m],
            T_fft,
            n_fft,
            M_T[a],
            Σ_T[a],
            T_subseq_isvalid[a],
            M_T,
            Σ_T,
            T_subseq_isvalid,
        )
        D_squared[D_squared > (radius * motif_distance) ** 2] = np.inf
        core._apply_exclusion_zone(D_squared, a, excl_zone, np.inf)
        core._apply_exclusion_zone(D_squared, b, excl_zone, np.inf)
        D_squared[suppressed] = np.inf

        neighbors = _find_neighbors(D_squared, excl_zone, n_neighbors)
        logger.debug(f"Motif ({a}, {b}) has {neighbors.shape[0]} neighbors")

        for idx in [a, b, *neighbors]:
            core._apply_exclusion_zone(P, idx, excl_zone, np.inf)
            core._apply_exclusion_zone(suppressed, idx, excl_zone, True)

        motif_idx.append((a, b))
        motif_neighbor.append(neighbors)

    if len(motif_idx) < n_motifs:
        logger.info(f"Found {len(motif_idx)} of {n_motifs} motifs.")

    motif = Motif(motif_idx, motif_neighbor, [m] * len(motif_idx))

    return mp.with_motif(motif)
