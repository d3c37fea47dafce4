# parts_replenishment/core/safety_stock.py
import math
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from scipy import stats

from parts_replenishment.core.constants import (
    SERVICE_LEVEL_TARGETS, Z_SCORES, MIN_SERVICE_LEVEL, MAX_SERVICE_LEVEL,
    REORDER_POINT_THRESHOLDS
)
from parts_replenishment.core.types import (
    DemandPattern, SupplierMetrics, SafetyStockCalculation, ReorderPointCalculation
)
from parts_replenishment.config import config
from parts_replenishment.exceptions import ReorderPointError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.models import (
    PartCriticality, CalculationMethod, TrendDirection, VariabilityClass
)

logger = get_logger(__name__)


def determine_service_level(category: str, targets: Dict = SERVICE_LEVEL_TARGETS) -> float:
    """Get the target service level for a part category.

    Args:
        category: Free-text part category
        targets: Service level targets keyed by criticality

    Returns:
        Service level as a fraction (e.g. 0.95)
    """
    criticality = PartCriticality.from_category(category)
    return targets[criticality.value]['level']


def normalize_service_level(service_level: float) -> float:
    """Clamp a service level into the tabulated range."""
    return max(MIN_SERVICE_LEVEL, min(MAX_SERVICE_LEVEL, service_level))


def get_z_score(service_level: float, z_scores: Dict[float, float] = Z_SCORES) -> float:
    """Look up the Z-score for a service level.

    The level is normalized first; values between tabulated levels round up
    to the next tabulated level.

    Args:
        service_level: Service level as a fraction
        z_scores: Service level -> Z-score table

    Returns:
        Z-score
    """
    level = normalize_service_level(service_level)
    levels = sorted(z_scores)

    for tabulated in levels:
        if level <= tabulated:
            return z_scores[tabulated]

    return z_scores[levels[-1]]


def estimate_lead_time_variability(
    metrics: SupplierMetrics,
    thresholds: Dict = REORDER_POINT_THRESHOLDS
) -> float:
    """Estimate lead time standard deviation from on-time delivery.

    Args:
        metrics: Supplier metrics (on-time rate as a percentage)
        thresholds: Reorder point thresholds

    Returns:
        Lead time standard deviation in days
    """
    on_time_rate = metrics.on_time_delivery_rate / 100.0
    cv = thresholds['lead_time_cv_base'] - on_time_rate * thresholds['lead_time_cv_on_time_factor']
    return metrics.average_lead_time * cv


def calculate_combined_std_dev(
    demand_std_dev: float,
    lead_time_std_dev: float,
    average_demand: float,
    average_lead_time: float
) -> float:
    """Combine demand and lead time variability.

    sqrt(LT * var(demand) + demand^2 * var(LT))
    """
    demand_variance = demand_std_dev ** 2
    lead_time_variance = lead_time_std_dev ** 2

    combined_variance = (
        average_lead_time * demand_variance +
        (average_demand ** 2) * lead_time_variance
    )
    return math.sqrt(max(0.0, combined_variance))


def calculate_safety_stock(
    average_demand: float,
    demand_std_dev: float,
    average_lead_time: float,
    lead_time_std_dev: float,
    service_level: float,
    z_scores: Dict[float, float] = Z_SCORES
) -> SafetyStockCalculation:
    """Calculate safety stock using the normal distribution.

    Args:
        average_demand: Mean monthly demand
        demand_std_dev: Standard deviation of monthly demand
        average_lead_time: Average lead time in days
        lead_time_std_dev: Lead time standard deviation in days
        service_level: Target service level as a fraction
        z_scores: Service level -> Z-score table

    Returns:
        SafetyStockCalculation
    """
    normalized = normalize_service_level(service_level)
    z_score = get_z_score(normalized, z_scores)

    combined = calculate_combined_std_dev(
        demand_std_dev, lead_time_std_dev, average_demand, average_lead_time
    )
    safety_stock = z_score * combined

    # Probability covered by the tabulated Z-score
    covered = float(stats.norm.cdf(z_score)) * 100.0

    return SafetyStockCalculation(
        safety_stock=safety_stock,
        z_score=z_score,
        demand_std_dev=demand_std_dev,
        lead_time_std_dev=lead_time_std_dev,
        combined_std_dev=combined,
        service_level=normalized,
        reasoning=(f"Z-score {z_score:.2f} x combined std dev {combined:.2f} = "
                   f"{safety_stock:.2f} units ({covered:.1f}% coverage)")
    )


def assess_calculation_quality(
    pattern: DemandPattern,
    metrics: SupplierMetrics,
    thresholds: Dict = REORDER_POINT_THRESHOLDS
) -> Tuple[CalculationMethod, float]:
    """Choose the calculation method and its confidence.

    Args:
        pattern: Demand pattern
        metrics: Supplier metrics
        thresholds: Reorder point thresholds

    Returns:
        Tuple with calculation method and confidence
    """
    confidence = thresholds['base_confidence']
    confidence += pattern.forecastability.score * thresholds['forecastability_weight']

    if metrics.on_time_delivery_rate > thresholds['on_time_rate_threshold']:
        confidence += thresholds['on_time_bonus']

    if metrics.total_orders > thresholds['order_history_threshold']:
        confidence += thresholds['order_history_bonus']

    if (confidence > thresholds['statistical_confidence'] and
            pattern.variability.classification != VariabilityClass.HIGH):
        method = CalculationMethod.STATISTICAL
    elif pattern.trend.direction != TrendDirection.STABLE:
        method = CalculationMethod.DYNAMIC
    else:
        method = CalculationMethod.FIXED
        confidence = min(confidence, thresholds['fixed_confidence_cap'])

    return method, min(confidence, thresholds['max_confidence'])


def default_supplier_metrics(part) -> SupplierMetrics:
    """Supplier metrics to use when no supplier history exists for a part."""
    lead_time = getattr(part, 'lead_time_days', None) or config.reorder_point_config['default_lead_time_days']
    return SupplierMetrics(
        supplier_id='',
        average_lead_time=float(lead_time),
        on_time_delivery_rate=0.0,
        total_orders=0
    )


def create_minimal_reorder_point(
    part,
    reasoning: List[str],
    thresholds: Dict = REORDER_POINT_THRESHOLDS
) -> ReorderPointCalculation:
    """Create the fixed-method result used when a part has no demand.

    Args:
        part: Spare part (part_number, safety_stock, lead_time_days)
        reasoning: Reasoning trail collected so far
        thresholds: Reorder point thresholds

    Returns:
        ReorderPointCalculation flagged as minimal
    """
    rop_config = config.reorder_point_config
    safety_stock = max(1.0, float(part.safety_stock or rop_config['default_safety_stock']))
    lead_time = float(part.lead_time_days or rop_config['default_lead_time_days'])

    return ReorderPointCalculation(
        part_number=part.part_number,
        calculation_date=datetime.now(),
        reorder_point=safety_stock,
        safety_stock=safety_stock,
        average_demand=0.0,
        lead_time_days=lead_time,
        service_level=thresholds['minimal_service_level'],
        demand_variability=0.0,
        lead_time_variability=0.0,
        calculation_method=CalculationMethod.FIXED,
        confidence=thresholds['minimal_confidence'],
        reasoning=reasoning,
        is_minimal=True
    )


def calculate_reorder_point(
    part,
    pattern: DemandPattern,
    metrics: Optional[SupplierMetrics] = None,
    service_level: Optional[float] = None,
    service_levels: Dict = SERVICE_LEVEL_TARGETS,
    z_scores: Dict[float, float] = Z_SCORES,
    thresholds: Dict = REORDER_POINT_THRESHOLDS
) -> ReorderPointCalculation:
    """Calculate the reorder point and safety stock for a part.

    Args:
        part: Spare part (part_number, category, safety_stock, lead_time_days)
        pattern: Demand pattern of the part
        metrics: Lead time metrics of the supplying vendor
        service_level: Optional explicit target service level
        service_levels: Service level targets by criticality
        z_scores: Service level -> Z-score table
        thresholds: Reorder point thresholds

    Returns:
        ReorderPointCalculation with an ordered reasoning trail
    """
    if metrics is None:
        metrics = default_supplier_metrics(part)

    reasoning = []

    target = service_level or determine_service_level(part.category, service_levels)
    reasoning.append(f"Service level target: {target * 100:.1f}% based on part criticality")

    average_demand = pattern.variability.mean_demand
    demand_std_dev = pattern.variability.standard_deviation

    if average_demand == 0:
        reasoning.append('No historical demand data - using minimum safety stock')
        return create_minimal_reorder_point(part, reasoning, thresholds)

    try:
        average_lead_time = float(metrics.average_lead_time)
        lead_time_std_dev = estimate_lead_time_variability(metrics, thresholds)

        reasoning.append(f"Average demand: {average_demand:.2f} units/month")
        reasoning.append(f"Average lead time: {average_lead_time:.1f} days")

        safety = calculate_safety_stock(
            average_demand,
            demand_std_dev,
            average_lead_time,
            lead_time_std_dev,
            target,
            z_scores
        )
        reasoning.append(f"Safety stock calculation: {safety.reasoning}")

        days_per_month = thresholds['days_per_month']
        lead_time_demand = (average_demand / days_per_month) * average_lead_time
        reorder_point = math.ceil(lead_time_demand + safety.safety_stock)

        reasoning.append(f"Lead time demand: {lead_time_demand:.2f} units")
        reasoning.append(
            f"Reorder point: {lead_time_demand:.2f} + {safety.safety_stock:.2f} = {reorder_point} units"
        )

        method, confidence = assess_calculation_quality(pattern, metrics, thresholds)
        reasoning.append(f"Calculation method: {method.value} (confidence: {confidence * 100:.1f}%)")
    except (TypeError, ValueError) as e:
        raise ReorderPointError(
            f"Error calculating reorder point for part {part.part_number}: {str(e)}",
            details={'part_number': part.part_number}
        )

    return ReorderPointCalculation(
        part_number=part.part_number,
        calculation_date=datetime.now(),
        reorder_point=float(reorder_point),
        safety_stock=float(math.ceil(safety.safety_stock)),
        average_demand=average_demand,
        lead_time_days=average_lead_time,
        service_level=target,
        demand_variability=demand_std_dev,
        lead_time_variability=lead_time_std_dev,
        calculation_method=method,
        confidence=confidence,
        reasoning=reasoning
    )
