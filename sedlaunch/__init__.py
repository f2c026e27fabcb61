"""sedlaunch – photon packet emission from imported spectral sources.

Components:
- StoredTable N-d template tables with lin/log interpolation and spectral CDFs (core.table)
- SED families backed by BPASS, FSPS and TODDLERS tables, plus 21 cm spin-flip lines (families)
- EmissionRegistry and biased Allocation of history indices over entities (source)
- ImportedSource launching packets with bias compensation and Doppler shifts (source.imported)
- Launcher orchestrating threaded launches and packet writers (core.launcher, core.exporter)
"""

from .core.cdf import SpectralCdf
from .core.errors import ConfigurationError, ResourceError
from .core.table import AxisGrid, ResourceLocator, StoredTable
from .core.exporter import NpzPacketWriter, TextPacketWriter
from .core.launcher import Launcher, LauncherConfig
from .families.base import SEDFamily, SnapshotParameter
from .families.bpass import BpassChabrier100SEDFamily
from .families.fsps import FSPSVarIMFSEDFamily
from .families.toddlers import ToddlersSEDFamily, ToddlersSFRNormalizedSEDFamily
from .families.spinflip import SpinFlipSEDFamily
from .families.single import BpassChabrier100SED, FSPSVarIMFSED
from .source.allocation import Allocation
from .source.imported import ImportedSource
from .source.packet import PacketBatch, PhotonPacket
from .source.random import NumpyRandom
from .source.registry import EmissionRegistry
from .source.snapshot import ColumnSnapshot
