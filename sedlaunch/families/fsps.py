from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from ..core.table import ResourceLocator, StoredTable
from ..core.units import MSUN, YEAR
from .base import SnapshotParameter, TableSEDFamily


class FSPSVarIMFSEDFamily(TableSEDFamily):
    """FSPS simple stellar populations with a variable IMF slope.

    Parameters: initial mass, metallicity, IMF slope, age.
    """
    name = "fsps"
    RESOURCE = "FSPSSEDFamily_Variable"
    AXES = "lambda(m),Z(1),alpha(1),t(yr)"
    QUANTITY = "Llambda(W/m)"

    def __init__(self, locator: Optional[ResourceLocator] = None) -> None:
        self.table = StoredTable.open(self.RESOURCE, self.AXES, self.QUANTITY, False, locator)

    def parameter_info(self) -> List[SnapshotParameter]:
        return [
            SnapshotParameter.initial_mass(),
            SnapshotParameter.metallicity(),
            SnapshotParameter.custom("IMF slope"),
            SnapshotParameter.age(),
        ]

    def _table(self) -> StoredTable:
        return self.table

    def _select(self, parameters: Sequence[float]) -> Tuple[StoredTable, float, Tuple[float, ...]]:
        M = parameters[0] / MSUN
        Z = parameters[1]
        alpha = parameters[2]
        t = parameters[3] / YEAR
        return self.table, M, (Z, alpha, t)
