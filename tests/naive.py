import math

import numpy as np
from scipy.spatial.distance import cdist
from scipy.stats import norm

from tsmp import config, core


def is_ptp_zero_1d(a, w):  # `a` is 1-D
    n = len(a) - w + 1
    out = np.empty(n)
    for i in range(n):
        out[i] = np.max(a[i : i + w]) - np.min(a[i : i + w])
    return out == 0


def z_norm(a, axis=0):
    std = np.std(a, axis, keepdims=True)
    std = np.where(std > 0, std, 1.0)

    return (a - np.mean(a, axis, keepdims=True)) / std


def compute_mean_std(T, m):
    n = T.shape[0]

    M_T = np.zeros(n - m + 1, dtype=float)
    Σ_T = np.zeros(n - m + 1, dtype=float)

    for i in range(n - m + 1):
        Q = T[i : i + m].copy()
        M_T[i] = np.mean(Q)
        Σ_T[i] = np.std(Q)

    return M_T, Σ_T


def rolling_isinvalid(T, m):
    l = T.shape[0] - m + 1
    out = np.zeros(l, dtype=bool)
    for i in range(l):
        out[i] = not np.all(np.isfinite(T[i : i + m]))

    return out


def subseq_isvalid(T, m):
    isinvalid = rolling_isinvalid(T, m)
    T = T.copy()
    T[~np.isfinite(T)] = 0.0
    _, Σ_T = compute_mean_std(T, m)
    isdegenerate = (Σ_T < config.TSMP_EPS) | is_ptp_zero_1d(T, m)

    return ~(isinvalid | isdegenerate)


def apply_exclusion_zone(a, trivial_idx, excl_zone, val):
    start = max(0, trivial_idx - excl_zone)
    stop = min(a.shape[-1], trivial_idx + excl_zone + 1)
    for i in range(start, stop):
        a[..., i] = val


def get_excl_zone(m, ratio):
    return int(np.round(m * ratio + config.TSMP_EPS))


def distance_profile(Q, T, m):
    Q_isvalid = subseq_isvalid(Q, m)[0]
    T_isvalid = subseq_isvalid(T, m)
    T = T.copy()
    T[~np.isfinite(T)] = 0.0

    D = np.linalg.norm(z_norm(core.rolling_window(T, m), 1) - z_norm(Q), axis=1)
    D[~T_isvalid] = np.inf
    if not Q_isvalid:
        D[:] = np.inf

    return D


def distance_matrix(T, m):
    isvalid = subseq_isvalid(T, m)
    T = T.copy()
    T[~np.isfinite(T)] = 0.0

    subseqs = z_norm(core.rolling_window(T, m), 1)
    D = cdist(subseqs, subseqs, metric="euclidean")
    D[~isvalid, :] = np.inf
    D[:, ~isvalid] = np.inf

    return D


def stamp(T, m, exclusion_zone=0.5):
    excl_zone = get_excl_zone(m, exclusion_zone)
    D = distance_matrix(T, m)
    l = D.shape[0]

    P = np.full(l, np.inf)
    I = np.full(l, -1, dtype=np.int64)
    PL = np.full(l, np.inf)
    IL = np.full(l, -1, dtype=np.int64)
    PR = np.full(l, np.inf)
    IR = np.full(l, -1, dtype=np.int64)
    for i in range(l):
        for j in range(l):
            if abs(i - j) <= excl_zone:
                continue
            if D[i, j] < P[i]:
                P[i] = D[i, j]
                I[i] = j
            if j < i and D[i, j] < PL[i]:
                PL[i] = D[i, j]
                IL[i] = j
            if j > i and D[i, j] < PR[i]:
                PR[i] = D[i, j]
                IR[i] = j

    return P, I, PL, IL, PR, IR


class _Profile:
    def __init__(self, l):
        self.P = np.full(l, np.inf)
        self.I = np.full(l, -1, dtype=np.int64)
        self.PL = np.full(l, np.inf)
        self.IL = np.full(l, -1, dtype=np.int64)
        self.PR = np.full(l, np.inf)
        self.IR = np.full(l, -1, dtype=np.int64)

    def update(self, idx, nn, d):
        if d < self.P[idx]:
            self.P[idx] = d
            self.I[idx] = nn
        if nn < idx and d < self.PL[idx]:
            self.PL[idx] = d
            self.IL[idx] = nn
        if nn > idx and d < self.PR[idx]:
            self.PR[idx] = d
            self.IR[idx] = nn

    def out(self):
        return self.P, self.I, self.PL, self.IL, self.PR, self.IR


def _prescrimp(D, m, excl_zone, s, profile):
    l = D.shape[0]
    for i in range(1, l, s):
        distance_profile = D[i].copy()
        apply_exclusion_zone(distance_profile, i, excl_zone, np.inf)
        for j in range(l):
            if np.isfinite(distance_profile[j]):
                profile.update(j, i, distance_profile[j])
                profile.update(i, j, distance_profile[j])

        nn = np.argmin(distance_profile)
        if distance_profile[nn] == np.inf:
            continue

        for g in range(1, min(s, l - i, l - nn)):
            profile.update(i + g, nn + g, D[i + g, nn + g])
            profile.update(nn + g, i + g, D[i + g, nn + g])

        for g in range(1, min(s, i + 1, nn + 1)):
            profile.update(i - g, nn - g, D[i - g, nn - g])
            profile.update(nn - g, i - g, D[i - g, nn - g])


def prescrimp(T, m, exclusion_zone=0.5, pre_scrimp=0.25):
    excl_zone = get_excl_zone(m, exclusion_zone)
    s = max(1, math.floor(m * pre_scrimp + config.TSMP_EPS))
    D = distance_matrix(T, m)
    profile = _Profile(D.shape[0])
    _prescrimp(D, m, excl_zone, s, profile)

    return profile.out()


def scrimp(T, m, exclusion_zone=0.5, s_size=np.inf, pre_scrimp=0.0):
    excl_zone = get_excl_zone(m, exclusion_zone)
    D = distance_matrix(T, m)
    l = D.shape[0]
    profile = _Profile(l)

    if pre_scrimp > 0:
        s = max(1, math.floor(m * pre_scrimp + config.TSMP_EPS))
        _prescrimp(D, m, excl_zone, s, profile)

    diags = np.random.permutation(np.arange(excl_zone + 1, l, dtype=np.int64))
    diags = diags[: int(min(s_size, diags.shape[0]))]
    for k in diags:
        for i in range(l - k):
            d = D[i, i + k]
            # `i` is a left neighbor of `i + k` and `i + k` is a right neighbor of `i`
            profile.update(i + k, i, d)
            profile.update(i, i + k, d)

    return profile.out()


def find_motif(P, I, T, m, n_motifs, n_neighbors, radius, excl_zone):
    P = P.copy()
    D = distance_matrix(T, m)
    suppressed = np.zeros(P.shape[0], dtype=bool)

    motif_idx = []
    motif_neighbor = []
    while len(motif_idx) < n_motifs:
        min_idx = np.argmin(P)
        if not np.isfinite(P[min_idx]):
            break

        a, b = sorted((min_idx, I[min_idx]))
        if suppressed[a] or suppressed[b]:
            P[min_idx] = np.inf
            continue

        distance_profile = D[a].copy()
        distance_profile[distance_profile > radius * P[min_idx]] = np.inf
        apply_exclusion_zone(distance_profile, a, excl_zone, np.inf)
        apply_exclusion_zone(distance_profile, b, excl_zone, np.inf)
        distance_profile[suppressed] = np.inf

        neighbors = []
        for nn in np.argsort(distance_profile, kind="mergesort"):
            if len(neighbors) >= n_neighbors or np.isinf(distance_profile[nn]):
                break
            if all(abs(nn - x) > excl_zone for x in neighbors):
                neighbors.append(nn)

        for idx in [a, b] + neighbors:
            apply_exclusion_zone(P, idx, excl_zone, np.inf)
            apply_exclusion_zone(suppressed, idx, excl_zone, True)

        motif_idx.append((a, b))
        motif_neighbor.append(neighbors)

    return motif_idx, motif_neighbor


def mstamp(T, m, exclusion_zone=0.5):
    excl_zone = get_excl_zone(m, exclusion_zone)
    d = T.shape[0]
    D = np.array([distance_matrix(T[k], m) for k in range(d)])
    l = D.shape[1]

    P = np.full((l, d), np.inf)
    I = np.full((l, d), -1, dtype=np.int64)
    for i in range(l):
        multi_D = np.sort(D[:, i, :], axis=0)
        for k in range(d):
            row = np.mean(multi_D[: k + 1], axis=0)
            apply_exclusion_zone(row, i, excl_zone, np.inf)
            I[i, k] = np.argmin(row)
            P[i, k] = row[I[i, k]]
            if np.isinf(P[i, k]):
                I[i, k] = -1

    return P, I


def get_bit_save(motif_1, motif_2, k, n_bit):
    bins = norm.ppf(np.arange(1, 2**n_bit) / 2**n_bit)
    d, m = motif_1.shape

    disc_1 = np.empty((d, m), dtype=np.int64)
    disc_2 = np.empty((d, m), dtype=np.int64)
    for i in range(d):
        disc_1[i] = np.searchsorted(bins, z_norm(motif_1[i]), side="left")
        disc_2[i] = np.searchsorted(bins, z_norm(motif_2[i]), side="left")

    D = np.sqrt(np.sum((disc_1 - disc_2) ** 2, axis=1))
    S = np.argsort(D, kind="mergesort")[: k + 1]

    n_val = len(set((disc_1[S] - disc_2[S]).ravel().tolist()))
    bit_size = n_bit * (2 * d * m - len(S) * m) + len(S) * m * np.log2(n_val)
    bit_size += n_val * n_bit

    return bit_size, S
