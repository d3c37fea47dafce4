# parts_replenishment/utils/validation.py
from typing import Dict

from parts_replenishment.core.constants import REORDER_POINT_THRESHOLDS
from parts_replenishment.core.types import ReorderPointCalculation, ValidationResult
from parts_replenishment.models import (
    PartCriticality, TransactionType, IssueSeverity
)


def validate_reorder_point(
    calculation: ReorderPointCalculation,
    category: str,
    thresholds: Dict = REORDER_POINT_THRESHOLDS
) -> ValidationResult:
    """Validate a reorder point calculation.

    The calculation is never corrected here; problems are reported as
    issues and the caller decides what to do with them.

    Args:
        calculation: Reorder point calculation to check
        category: Part category (used for criticality)
        thresholds: Reorder point thresholds

    Returns:
        ValidationResult; invalid when any error-level issue exists
    """
    result = ValidationResult()

    if calculation.reorder_point < calculation.safety_stock:
        result.add(IssueSeverity.ERROR, 'reorder_point', 'Reorder point is less than safety stock')

    months = thresholds['excessive_months_of_demand']
    if calculation.reorder_point > calculation.average_demand * months:
        result.add(IssueSeverity.WARNING, 'reorder_point',
                   f"Reorder point seems excessive (>{months} months demand)")
        result.add(IssueSeverity.INFO, 'reorder_point', 'Review demand forecasting accuracy')

    if calculation.confidence < thresholds['low_confidence']:
        result.add(IssueSeverity.WARNING, 'confidence', 'Low confidence in calculation due to limited data')
        result.add(IssueSeverity.INFO, 'confidence', 'Collect more historical data for better accuracy')

    if (calculation.service_level > thresholds['max_service_level_low_criticality'] and
            PartCriticality.from_category(category) == PartCriticality.LOW):
        result.add(IssueSeverity.WARNING, 'service_level', 'Very high service level for low-criticality part')
        result.add(IssueSeverity.INFO, 'service_level', 'Consider reducing service level to optimize costs')

    return result


def validate_transaction_record(record) -> ValidationResult:
    """Validate a normalized transaction record before it is used for analysis.

    Args:
        record: Transaction record

    Returns:
        ValidationResult
    """
    result = ValidationResult()

    if not record.part_number:
        result.add(IssueSeverity.ERROR, 'part_number', 'Part number is required')

    if not record.transaction_date:
        result.add(IssueSeverity.ERROR, 'transaction_date', 'Transaction date is required')

    transaction_type = record.transaction_type
    if not transaction_type:
        result.add(IssueSeverity.ERROR, 'transaction_type', 'Transaction type is required')
    elif not isinstance(transaction_type, TransactionType):
        try:
            transaction_type = TransactionType.from_string(transaction_type)
        except ValueError as e:
            result.add(IssueSeverity.ERROR, 'transaction_type', str(e))
            transaction_type = None

    if record.quantity is None or record.quantity <= 0:
        result.add(IssueSeverity.ERROR, 'quantity', 'Quantity must be greater than zero')

    if record.unit_price is not None and record.unit_price < 0:
        result.add(IssueSeverity.ERROR, 'unit_price', 'Unit price cannot be negative')

    quality = record.quality_score
    if quality is not None and not 0.0 <= quality <= 1.0:
        result.add(IssueSeverity.WARNING, 'quality_score', 'Quality score should be between 0 and 1')

    if transaction_type == TransactionType.PURCHASE and not record.supplier_id:
        result.add(IssueSeverity.WARNING, 'supplier_id', 'Purchase record has no supplier')

    return result
