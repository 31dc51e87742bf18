import os.path
from importlib.metadata import distribution
from site import getsitepackages

from . import config  # noqa: F401
from .core import InputShapeError, ParameterError, mass  # noqa: F401
from .mmotifs import find_multi_motif, get_bit_save  # noqa: F401
from .motifs import find_motif  # noqa: F401
from .mstamp import mstamp  # noqa: F401
from .prescrimp import prescrimp  # noqa: F401
from .results import (  # noqa: F401
    Kind,
    MatrixProfile,
    Motif,
    MultiMatrixProfile,
    MultiMotif,
)
from .scrimp import scrimp, tsmp  # noqa: F401

try:
    _dist = distribution("tsmp")
    # Normalize case for Windows systems
    dist_loc = os.path.normcase(getsitepackages()[0])
    here = os.path.normcase(__file__)
    if not here.startswith(os.path.join(dist_loc, "tsmp")):
        # not installed, but there is another version that *is*
        raise ModuleNotFoundError  # pragma: no cover
except ModuleNotFoundError:  # pragma: no cover
    __version__ = "Please install this project with setup.py"
else:  # pragma: no cover
    __version__ = _dist.version
