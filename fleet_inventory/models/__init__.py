from fleet_inventory.models.part import Part, ABCClass
from fleet_inventory.models.cycle_count import (
    CycleCount, CycleCountStatus, CountSequence, OPEN_STATUSES,
)
from fleet_inventory.models.inventory_adjustment import (
    InventoryAdjustmentTransaction, AdjustmentType,
)

__all__ = [
    "Part",
    "ABCClass",
    "CycleCount",
    "CycleCountStatus",
    "CountSequence",
    "OPEN_STATUSES",
    "InventoryAdjustmentTransaction",
    "AdjustmentType",
]
