# parts_replenishment/core/order_policy.py
import math
from typing import Dict, Optional, Sequence

from parts_replenishment.core.constants import (
    SERVICE_LEVEL_TARGETS, Z_SCORES, REORDER_POINT_THRESHOLDS, CANDIDATE_SERVICE_LEVELS
)
from parts_replenishment.core.safety_stock import calculate_reorder_point
from parts_replenishment.core.types import (
    DemandPattern, SupplierMetrics, EOQResult, ServiceLevelCost,
    ServiceLevelOptimization, ReorderPointCalculation, ValidationResult
)
from parts_replenishment.config import config
from parts_replenishment.exceptions import CalculationError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.utils.validation import validate_reorder_point

logger = get_logger(__name__)


def calculate_eoq(
    annual_demand: float,
    ordering_cost: float,
    carrying_cost_per_unit: float
) -> EOQResult:
    """Calculate the Economic Order Quantity.

    Args:
        annual_demand: Annual demand in units
        ordering_cost: Cost of placing one order
        carrying_cost_per_unit: Annual cost of holding one unit

    Returns:
        EOQResult; eoq 1 and cost 0 when demand or carrying cost is zero
    """
    if annual_demand == 0 or carrying_cost_per_unit == 0:
        return EOQResult(
            eoq=1,
            total_cost=0.0,
            reasoning='Insufficient data for EOQ calculation'
        )

    if annual_demand < 0 or ordering_cost < 0 or carrying_cost_per_unit < 0:
        raise CalculationError(
            "EOQ inputs cannot be negative",
            details={
                'annual_demand': annual_demand,
                'ordering_cost': ordering_cost,
                'carrying_cost_per_unit': carrying_cost_per_unit
            }
        )

    eoq = math.sqrt((2 * annual_demand * ordering_cost) / carrying_cost_per_unit)
    total_cost = math.sqrt(2 * annual_demand * ordering_cost * carrying_cost_per_unit)

    return EOQResult(
        eoq=int(math.ceil(eoq)),
        total_cost=total_cost,
        reasoning=(f"EOQ = sqrt(2 x {annual_demand:g} x {ordering_cost:g} / "
                   f"{carrying_cost_per_unit:g}) = {eoq:.0f} units")
    )


def optimize_service_level(
    part,
    pattern: DemandPattern,
    metrics: Optional[SupplierMetrics] = None,
    unit_cost: Optional[float] = None,
    carrying_cost_rate: Optional[float] = None,
    stockout_cost_per_unit: Optional[float] = None,
    candidates: Sequence[float] = CANDIDATE_SERVICE_LEVELS,
    z_scores: Dict[float, float] = Z_SCORES,
    thresholds: Dict = REORDER_POINT_THRESHOLDS
) -> ServiceLevelOptimization:
    """Pick the service level minimizing carrying plus stockout cost.

    Args:
        part: Spare part
        pattern: Demand pattern of the part
        metrics: Supplier lead time metrics
        unit_cost: Unit cost (default part unit cost, then configured default)
        carrying_cost_rate: Annual carrying cost rate as a fraction
        stockout_cost_per_unit: Cost of one unit short
        candidates: Service levels to compare
        z_scores: Service level -> Z-score table
        thresholds: Reorder point thresholds

    Returns:
        ServiceLevelOptimization with the cost of every candidate
    """
    rop_config = config.reorder_point_config

    if unit_cost is None:
        unit_cost = getattr(part, 'unit_cost', None) or config.recommendation_config['default_unit_cost']
    if carrying_cost_rate is None:
        carrying_cost_rate = rop_config['carrying_cost_rate']
    if stockout_cost_per_unit is None:
        stockout_cost_per_unit = rop_config['stockout_cost_per_unit']

    annual_demand = pattern.variability.mean_demand * 12
    costs = []
    reasoning = []

    for level in candidates:
        calculation = calculate_reorder_point(
            part, pattern, metrics, level, z_scores=z_scores, thresholds=thresholds
        )

        carrying_cost = (calculation.safety_stock / 2) * unit_cost * carrying_cost_rate
        stockout_cost = (1 - level) * annual_demand * stockout_cost_per_unit
        total_cost = carrying_cost + stockout_cost

        costs.append(ServiceLevelCost(
            service_level=level,
            safety_stock=calculation.safety_stock,
            carrying_cost=carrying_cost,
            stockout_cost=stockout_cost,
            total_cost=total_cost
        ))
        reasoning.append(
            f"Service level {level * 100:.0f}%: Carrying cost ${carrying_cost:.0f}, "
            f"Stockout cost ${stockout_cost:.0f}, Total ${total_cost:.0f}"
        )

    optimal = costs[0]
    for cost in costs[1:]:
        if cost.total_cost < optimal.total_cost:
            optimal = cost

    reasoning.append(
        f"Optimal service level: {optimal.service_level * 100:.0f}% "
        f"with total cost ${optimal.total_cost:.0f}"
    )

    return ServiceLevelOptimization(
        optimal_service_level=optimal.service_level,
        costs=costs,
        reasoning=reasoning
    )


class ReorderPointCalculator:
    """Reorder point, EOQ and service level calculations bound to one set of tables."""

    def __init__(
        self,
        service_levels: Dict = None,
        z_scores: Dict[float, float] = None,
        thresholds: Dict = None
    ):
        self.service_levels = service_levels or SERVICE_LEVEL_TARGETS
        self.z_scores = z_scores or Z_SCORES
        self.thresholds = thresholds or REORDER_POINT_THRESHOLDS

    def calculate(
        self,
        part,
        pattern: DemandPattern,
        metrics: Optional[SupplierMetrics] = None,
        service_level: Optional[float] = None
    ) -> ReorderPointCalculation:
        calculation = calculate_reorder_point(
            part, pattern, metrics, service_level,
            self.service_levels, self.z_scores, self.thresholds
        )
        logger.debug(
            f"Reorder point for {part.part_number}: ROP={calculation.reorder_point}, "
            f"SS={calculation.safety_stock}, method={calculation.calculation_method.value}"
        )
        return calculation

    def optimize_service_level(self, part, pattern: DemandPattern, metrics: Optional[SupplierMetrics] = None,
                               **kwargs) -> ServiceLevelOptimization:
        return optimize_service_level(
            part, pattern, metrics,
            z_scores=self.z_scores, thresholds=self.thresholds, **kwargs
        )

    def calculate_eoq(self, annual_demand: float, ordering_cost: float,
                      carrying_cost_per_unit: float) -> EOQResult:
        return calculate_eoq(annual_demand, ordering_cost, carrying_cost_per_unit)

    def validate(self, calculation: ReorderPointCalculation, category: str) -> ValidationResult:
        return validate_reorder_point(calculation, category, self.thresholds)
