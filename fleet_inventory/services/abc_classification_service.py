"""
ABC Classification Service.

Classifies parts by annual usage value (unit cost x usage quantity) using a
cumulative Pareto split: the parts making up the first ~80% of total value
are A, the next ~15% B, the rest C.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.config import settings
from fleet_inventory.models.part import Part, ABCClass

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass
class ABCRecalculationResult:
    """Outcome of a classification run."""
    updated: int = 0
    classified: int = 0
    flagged: List[str] = field(default_factory=list)
    class_counts: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict:
        return {
            "updated": self.updated,
            "classified": self.classified,
            "flagged": list(self.flagged),
            "class_counts": dict(self.class_counts),
        }


def usage_value(part: Part) -> Tuple[Decimal, bool]:
    """
    Usage value of a part and whether its data is valid.

    Missing cost or usage counts as zero value. Negative cost or usage is
    invalid: the part is valued at zero and reported.
    """
    unit_cost = part.unit_cost
    usage = part.usage_quantity
    if (unit_cost is not None and unit_cost < 0) or (usage is not None and usage < 0):
        return ZERO, False
    if unit_cost is None or usage is None:
        return ZERO, True
    return Decimal(unit_cost) * Decimal(usage), True


def classify_by_usage_value(
    values: Iterable[Tuple[str, Decimal]],
    a_threshold_percent: Decimal,
    b_threshold_percent: Decimal,
) -> Dict[str, ABCClass]:
    """
    Assign ABC classes from (part_number, usage_value) pairs.

    Parts are ranked by value descending, ties by part number ascending, so
    identical input always yields identical classes. A part's class is
    decided by the cumulative share *including* its own value; a share equal
    to a threshold stays in the lower-letter class.
    """
    ranked = sorted(values, key=lambda item: (-item[1], item[0]))
    total = sum((value for _, value in ranked), ZERO)

    classes: Dict[str, ABCClass] = {}
    cumulative = ZERO
    for part_number, value in ranked:
        if value <= 0 or total <= 0:
            classes[part_number] = ABCClass.C
            continue

        cumulative += value
        cumulative_percent = (cumulative / total) * HUNDRED

        if cumulative_percent <= a_threshold_percent:
            classes[part_number] = ABCClass.A
        elif cumulative_percent <= b_threshold_percent:
            classes[part_number] = ABCClass.B
        else:
            classes[part_number] = ABCClass.C

    return classes


class ABCClassificationService:
    """Recomputes ``Part.abc_class`` for every part."""

    def __init__(
        self,
        db: AsyncSession,
        a_threshold_percent: Optional[Decimal] = None,
        b_threshold_percent: Optional[Decimal] = None,
        batch_size: Optional[int] = None,
    ):
        self.db = db
        self.a_threshold = Decimal(str(
            a_threshold_percent if a_threshold_percent is not None else settings.ABC_A_THRESHOLD_PERCENT
        ))
        self.b_threshold = Decimal(str(
            b_threshold_percent if b_threshold_percent is not None else settings.ABC_B_THRESHOLD_PERCENT
        ))
        if self.b_threshold < self.a_threshold:
            raise ValueError("B threshold must not be below A threshold")
        self.batch_size = batch_size or settings.CYCLE_COUNT_BATCH_SIZE

    async def recalculate(self) -> ABCRecalculationResult:
        """
        Recalculate ABC classes for all parts.

        Only parts whose class changes are written. Writes are committed in
        batches; an interrupted run leaves every written part correctly
        classified and a re-run finishes the rest.
        """
        result = await self.db.execute(
            select(Part).order_by(Part.part_number).execution_options(populate_existing=True)
        )
        parts = list(result.scalars().all())

        outcome = ABCRecalculationResult()
        values: List[Tuple[str, Decimal]] = []
        targets: Dict[str, ABCClass] = {}

        for part in parts:
            if not part.is_active:
                # Inactive parts keep their class; never leave one unclassified
                if part.abc_class is None:
                    targets[part.part_number] = ABCClass.C
                continue

            value, valid = usage_value(part)
            if not valid:
                logger.warning(
                    f"Part {part.part_number}: invalid cost/usage data "
                    f"(unit_cost={part.unit_cost}, usage_quantity={part.usage_quantity}), classified C"
                )
                outcome.flagged.append(part.part_number)
                targets[part.part_number] = ABCClass.C
                continue
            values.append((part.part_number, value))

        targets.update(classify_by_usage_value(values, self.a_threshold, self.b_threshold))

        pending = 0
        for part in parts:
            new_class = targets.get(part.part_number)
            if new_class is None:
                continue

            outcome.classified += 1
            outcome.class_counts[new_class.value] = outcome.class_counts.get(new_class.value, 0) + 1

            if part.abc_class is None or ABCClass(part.abc_class) != new_class:
                part.abc_class = new_class
                outcome.updated += 1
                pending += 1

            if pending >= self.batch_size:
                await self.db.commit()
                pending = 0

        await self.db.commit()

        logger.info(
            f"ABC recalculation: {outcome.classified} parts classified, "
            f"{outcome.updated} updated, {len(outcome.flagged)} flagged"
        )
        return outcome
