# Services module
from fleet_inventory.services.abc_classification_service import ABCClassificationService
from fleet_inventory.services.cycle_count_schedule_service import CycleCountScheduleService
from fleet_inventory.services.count_execution_service import CountExecutionService
from fleet_inventory.services.reconciliation_service import ReconciliationService
from fleet_inventory.services.cycle_count_service import CycleCountService
from fleet_inventory.services.count_sequence_service import CountSequenceService
from fleet_inventory.services.part_stock_service import PartStockService

__all__ = [
    "ABCClassificationService",
    "CycleCountScheduleService",
    "CountExecutionService",
    "ReconciliationService",
    "CycleCountService",
    "CountSequenceService",
    "PartStockService",
]
