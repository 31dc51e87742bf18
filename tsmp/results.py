# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import enum

import numpy as np

from .core import InputShapeError


class Kind(enum.Enum):
    """
    The kind of result held by a `MatrixProfile` or `MultiMatrixProfile`
    """

    MATRIX_PROFILE = "MatrixProfile"
    MOTIF = "Motif"
    MULTI_MATRIX_PROFILE = "MultiMatrixProfile"
    MULTI_MOTIF = "MultiMotif"


def _frozen(a, dtype):
    """
    Return a read-only copy of `a` (or `None` when `a` is `None`)

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    dtype : dtype
        The output `dtype`

    Returns
    -------
    out : numpy.ndarray
        A read-only copy
    """
    if a is None:
        return None

    out = np.array(a, dtype=dtype, copy=True)
    out.flags.writeable = False

    return out


class Motif:
    """
    Motifs extracted from a (univariate) matrix profile

    Parameters
    ----------
    motif_idx : list
        The motif pairs `(a, b)` with `a < b`

    motif_neighbor : list
        One array of neighbor indices per motif pair

    motif_window : list
        The window size used for each motif

    Attributes
    ----------
    motif_idx : list
        The motif pairs `(a, b)` with `a < b`

    motif_neighbor : list
        One array of neighbor indices per motif pair

    motif_window : list
        The window size used for each motif
    """

    def __init__(self, motif_idx, motif_neighbor, motif_window):
        self.motif_idx = [tuple(int(i) for i in pair) for pair in motif_idx]
        self.motif_neighbor = [_frozen(n, np.int64) for n in motif_neighbor]
        self.motif_window = [int(w) for w in motif_window]

    def __len__(self):
        return len(self.motif_idx)

    def __repr__(self):
        return (
            f"Motif(motif_idx={self.motif_idx}, "
            f"motif_neighbor={[n.tolist() for n in self.motif_neighbor]}, "
            f"motif_window={self.motif_window})"
        )


class MultiMotif:
    """
    Motifs extracted from a multi-dimensional matrix profile

    Parameters
    ----------
    motif_idx : list
        The position of each motif

    motif_nn : list
        The nearest neighbor position paired with each motif

    motif_dim : list
        One array of (zero-based) dimensions per motif

    motif_mdl : list
        One array of bit sizes (one value per candidate subspace size) per motif
    """

    def __init__(self, motif_idx, motif_nn, motif_dim, motif_mdl):
        self.motif_idx = [int(i) for i in motif_idx]
        self.motif_nn = [int(i) for i in motif_nn]
        self.motif_dim = [_frozen(d, np.int64) for d in motif_dim]
        self.motif_mdl = [_frozen(b, np.float64) for b in motif_mdl]

    def __len__(self):
        return len(self.motif_idx)

    def __repr__(self):
        return (
            f"MultiMotif(motif_idx={self.motif_idx}, "
            f"motif_dim={[d.tolist() for d in self.motif_dim]})"
        )


class MatrixProfile:
    """
    An immutable (univariate) matrix profile result

    Parameters
    ----------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        Matrix profile indices

    m : int
        Window size

    ez : float
        Exclusion zone ratio (relative to `m`)

    excl_zone : int
        The half width of the exclusion zone

    left_P : numpy.ndarray, default None
        Left matrix profile (self-joins only)

    left_I : numpy.ndarray, default None
        Left matrix profile indices (self-joins only)

    right_P : numpy.ndarray, default None
        Right matrix profile (self-joins only)

    right_I : numpy.ndarray, default None
        Right matrix profile indices (self-joins only)

    skip : numpy.ndarray, default None
        A boolean array that indicates whether a subsequence contained a
        `np.nan`/`np.inf` value (True)

    motif : Motif, default None
        Motifs extracted from this matrix profile

    Attributes
    ----------
    P_ : numpy.ndarray
        The matrix profile. Unset values are `np.inf`.

    I_ : numpy.ndarray
        The matrix profile indices. Unset values are `-1`.

    left_P_ : numpy.ndarray
        The left matrix profile or `None`

    left_I_ : numpy.ndarray
        The left matrix profile indices or `None`

    right_P_ : numpy.ndarray
        The right matrix profile or `None`

    right_I_ : numpy.ndarray
        The right matrix profile indices or `None`

    skip_ : numpy.ndarray
        The skip mask or `None`

    kind : Kind
        `Kind.MATRIX_PROFILE` or, once motifs are attached, `Kind.MOTIF`
    """

    def __init__(
        self,
        P,
        I,
        m,
        ez,
        excl_zone,
        left_P=None,
        left_I=None,
        right_P=None,
        right_I=None,
        skip=None,
        motif=None,
    ):
        self._P = _frozen(P, np.float64)
        self._I = _frozen(I, np.int64)
        self._left_P = _frozen(left_P, np.float64)
        self._left_I = _frozen(left_I, np.int64)
        self._right_P = _frozen(right_P, np.float64)
        self._right_I = _frozen(right_I, np.int64)
        self._skip = _frozen(skip, np.bool_)
        self.m = int(m)
        self.ez = ez
        self.excl_zone = int(excl_zone)
        self.motif = motif
        self.kind = Kind.MATRIX_PROFILE if motif is None else Kind.MOTIF

    def __len__(self):
        return self._P.shape[0]

    def __repr__(self):
        return f"MatrixProfile(kind={self.kind.value}, m={self.m}, l={len(self)})"

    @property
    def P_(self):
        return self._P

    @property
    def I_(self):
        return self._I

    @property
    def left_P_(self):
        return self._left_P

    @property
    def left_I_(self):
        return self._left_I

    @property
    def right_P_(self):
        return self._right_P

    @property
    def right_I_(self):
        return self._right_I

    @property
    def skip_(self):
        return self._skip

    @property
    def has_left_right(self):
        """
        Whether the left/right matrix profiles are present
        """
        return self._left_P is not None

    def with_motif(self, motif):
        """
        Return a copy of this matrix profile with `motif` attached

        Parameters
        ----------
        motif : Motif
            The extracted motifs

        Returns
        -------
        out : MatrixProfile
            A new matrix profile of kind `Kind.MOTIF`
        """
        return MatrixProfile(
            self._P,
            self._I,
            self.m,
            self.ez,
            self.excl_zone,
            left_P=self._left_P,
            left_I=self._left_I,
            right_P=self._right_P,
            right_I=self._right_I,
            skip=self._skip,
            motif=motif,
        )


class MultiMatrixProfile:
    """
    An immutable multi-dimensional matrix profile result

    Parameters
    ----------
    P : numpy.ndarray
        Multi-dimensional matrix profile with shape `(l, d)`. Column `k` is the
        matrix profile obtained with the best `k + 1` dimensions.

    I : numpy.ndarray
        Multi-dimensional matrix profile indices with shape `(l, d)`

    m : int
        Window size

    ez : float
        Exclusion zone ratio (relative to `m`)

    excl_zone : int
        The half width of the exclusion zone

    motif : MultiMotif, default None
        Motifs extracted from this matrix profile

    Attributes
    ----------
    P_ : numpy.ndarray
        The multi-dimensional matrix profile

    I_ : numpy.ndarray
        The multi-dimensional matrix profile indices

    n_dim : int
        The number of dimensions

    kind : Kind
        `Kind.MULTI_MATRIX_PROFILE` or, once motifs are attached,
        `Kind.MULTI_MOTIF`
    """

    def __init__(self, P, I, m, ez, excl_zone, motif=None):
        P = np.asarray(P)
        I = np.asarray(I)
        if P.ndim != 2 or P.shape != I.shape:
            raise InputShapeError(
                "`P` and `I` must be 2-dimensional arrays of the same shape (l, d)"
            )

        self._P = _frozen(P, np.float64)
        self._I = _frozen(I, np.int64)
        self.m = int(m)
        self.ez = ez
        self.excl_zone = int(excl_zone)
        self.n_dim = self._P.shape[1]
        self.motif = motif
        if motif is None:
            self.kind = Kind.MULTI_MATRIX_PROFILE
        else:
            self.kind = Kind.MULTI_MOTIF

    def __len__(self):
        return self._P.shape[0]

    def __repr__(self):
        return (
            f"MultiMatrixProfile(kind={self.kind.value}, m={self.m}, l={len(self)}, "
            f"n_dim={self.n_dim})"
        )

    @property
    def P_(self):
        return self._P

    @property
    def I_(self):
        return self._I

    def with_motif(self, motif):
        """
        Return a copy of this multi-dimensional matrix profile with `motif` attached

        Parameters
        ----------
        motif : MultiMotif
            The extracted motifs

        Returns
        -------
        out : MultiMatrixProfile
            A new matrix profile of kind `Kind.MULTI_MOTIF`
        """
        return MultiMatrixProfile(
            self._P, self._I, self.m, self.ez, self.excl_zone, motif=motif
        )


class ProfileState:
    """
    The mutable accumulator shared by PRE-SCRIMP and SCRIMP

    All profiles hold squared distances while they are being updated. Only
    `finalize` takes the square root and hands out (read-only) copies, so no caller
    ever observes an array that is still being written to.

    Parameters
    ----------
    l : int
        Matrix profile length

    skip : numpy.ndarray
        A boolean array that indicates whether a subsequence contained a
        `np.nan`/`np.inf` value (True)
    """

    def __init__(self, l, skip):
        self.P_squared = np.full(l, np.inf, dtype=np.float64)
        self.I = np.full(l, -1, dtype=np.int64)
        self.PL_squared = np.full(l, np.inf, dtype=np.float64)
        self.IL = np.full(l, -1, dtype=np.int64)
        self.PR_squared = np.full(l, np.inf, dtype=np.float64)
        self.IR = np.full(l, -1, dtype=np.int64)
        self.skip = skip

    def merge(self, P_squared, I, PL_squared, IL, PR_squared, IR):
        """
        Merge (pointwise minimum with strict `<`) another set of profiles into the
        accumulator

        Parameters
        ----------
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
        mask = P_squared < self.P_squared
        self.P_squared[mask] = P_squared[mask]
        self.I[mask] = I[mask]

        mask = PL_squared < self.PL_squared
        self.PL_squared[mask] = PL_squared[mask]
        self.IL[mask] = IL[mask]

        mask = PR_squared < self.PR_squared
        self.PR_squared[mask] = PR_squared[mask]
        self.IR[mask] = IR[mask]

    def finalize(self, m, ez, excl_zone):
        """
        Package the current state into a `MatrixProfile`

        Parameters
        ----------
        m : int
            Window size

        ez : float
            Exclusion zone ratio

        excl_zone : int
            The half width of the exclusion zone

        Returns
        -------
        out : MatrixProfile
            The best-so-far matrix profile
        """
        P = np.sqrt(self.P_squared)
        P[self.skip] = np.inf
        left_P = np.sqrt(self.PL_squared)
        left_P[self.skip] = np.inf
        right_P = np.sqrt(self.PR_squared)
        right_P[self.skip] = np.inf

        return MatrixProfile(
            P,
            self.I,
            m,
            ez,
            excl_zone,
            left_P=left_P,
            left_I=self.IL,
            right_P=right_P,
            right_I=self.IR,
            skip=self.skip,
        )
