from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from ..core.table import ResourceLocator, StoredTable
from ..core.units import MSUN, YEAR
from .base import SnapshotParameter, TableSEDFamily


class BpassChabrier100SEDFamily(TableSEDFamily):
    """Simple stellar populations from BPASS with binaries and a Chabrier IMF up to 100 Msun.

    Parameters: initial mass, metallicity, age. The spectrum is tabulated
    per solar mass on metallicity and age (in years) and scaled by the mass.
    """
    name = "bpass"
    RESOURCE = "BpassSEDFamily_Chabrier100"
    AXES = "lambda(m),Z(1),t(yr)"
    QUANTITY = "Llambda(W/m)"

    def __init__(self, locator: Optional[ResourceLocator] = None) -> None:
        self.table = StoredTable.open(self.RESOURCE, self.AXES, self.QUANTITY, False, locator)

    def parameter_info(self) -> List[SnapshotParameter]:
        return [SnapshotParameter.initial_mass(), SnapshotParameter.metallicity(), SnapshotParameter.age()]

    def _table(self) -> StoredTable:
        return self.table

    def _select(self, parameters: Sequence[float]) -> Tuple[StoredTable, float, Tuple[float, ...]]:
        M = parameters[0] / MSUN
        Z = parameters[1]
        t = parameters[2] / YEAR
        return self.table, M, (Z, t)
