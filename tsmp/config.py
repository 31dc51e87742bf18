# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import warnings

import numpy as np

_TSMP_DEFAULTS = {
    "TSMP_EPS": np.sqrt(np.finfo(np.float64).eps),
    "TSMP_DENOM_THRESHOLD": 1e-14,
    "TSMP_MIN_WINDOW_SIZE": 4,
    "TSMP_EXCL_ZONE_RATIO": 0.5,
    "TSMP_PRE_SCRIMP_RATIO": 0.25,
    "TSMP_DIAGS_PER_CHUNK": 256,
    "TSMP_SMALL_DISTANCE_THRESHOLD": 1e-5,
    "TSMP_TEST_PRECISION": 5,
    "TSMP_FASTMATH_FLAGS": {"nsz", "arcp", "contract", "afn", "reassoc"},
}

# Numba kernels never read these values directly. Every public function looks
# them up at call time and hands them to the kernels as explicit arguments, so
# changing a value here takes effect on the next call.

TSMP_EPS = _TSMP_DEFAULTS["TSMP_EPS"]
TSMP_DENOM_THRESHOLD = _TSMP_DEFAULTS["TSMP_DENOM_THRESHOLD"]
TSMP_MIN_WINDOW_SIZE = _TSMP_DEFAULTS["TSMP_MIN_WINDOW_SIZE"]
TSMP_EXCL_ZONE_RATIO = _TSMP_DEFAULTS["TSMP_EXCL_ZONE_RATIO"]
TSMP_PRE_SCRIMP_RATIO = _TSMP_DEFAULTS["TSMP_PRE_SCRIMP_RATIO"]
TSMP_DIAGS_PER_CHUNK = _TSMP_DEFAULTS["TSMP_DIAGS_PER_CHUNK"]
TSMP_SMALL_DISTANCE_THRESHOLD = _TSMP_DEFAULTS["TSMP_SMALL_DISTANCE_THRESHOLD"]
TSMP_TEST_PRECISION = _TSMP_DEFAULTS["TSMP_TEST_PRECISION"]
TSMP_FASTMATH_FLAGS = _TSMP_DEFAULTS["TSMP_FASTMATH_FLAGS"]


def _reset(var=None):
    """
    Reset the value of a configuration variable(s) to their default value(s)

    Parameters
    ----------
    var : str, default None
        The name of the configuration variable. If None, then all
        configuration variables are reset to their default values.

    Returns
    -------
    None
    """
    config_vars = [
        k for k, _ in globals().items() if k.isupper() and k.startswith("TSMP")
    ]

    if var is None:
        for config_var in config_vars:
            globals()[config_var] = _TSMP_DEFAULTS[config_var]
    elif var in config_vars:
        globals()[var] = _TSMP_DEFAULTS[var]
    else:  # pragma: no cover
        msg = f"Configuration reset was skipped for unrecognized '_TSMP_DEFAULT[{var}]'"
        warnings.warn(msg)

    return
