# parts_replenishment/services/recommendation_service.py
import math
import time
import uuid
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Union

from parts_replenishment.core.constants import (
    URGENCY_WEIGHTS, URGENCY_THRESHOLDS, ORDER_DATE_BUFFER_DAYS,
    COST_OPTIMIZATION_THRESHOLDS, CONFIDENCE_WEIGHTS
)
from parts_replenishment.core.demand_analysis import DemandAnalyzer
from parts_replenishment.core.order_policy import ReorderPointCalculator, calculate_eoq
from parts_replenishment.core.supplier_evaluation import SupplierEvaluator, to_supplier_metrics
from parts_replenishment.core.types import (
    DemandPattern, ReorderPointCalculation, SupplierRanking, UrgencyFactor,
    UrgencyClassification, SupplierAlternative, CostOptimization, SupplierSelection,
    NarrativeResult, RecommendationRequest, ReplenishmentRecommendation, SupplierMetrics
)
from parts_replenishment.config import config
from parts_replenishment.exceptions import DataStoreError, ValidationError, PartNotFoundError, NoSuppliersError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.models import (
    PartCriticality, UrgencyLevel, UrgencyFactorType, BusinessImpact,
    TrendDirection, SupplierRecommendation, RecommendationStatus
)
from parts_replenishment.services.narrative_service import (
    NarrativeService, NarrativeContext, RuleBasedNarrativeService
)
from parts_replenishment.services.session_memory import SessionContext
from parts_replenishment.utils.date_utils import to_base36
from parts_replenishment.utils.math_utils import clip

logger = get_logger(__name__)

BUSINESS_IMPACT_BY_CRITICALITY = {
    PartCriticality.CRITICAL: BusinessImpact.SEVERE,
    PartCriticality.HIGH: BusinessImpact.SIGNIFICANT,
    PartCriticality.MEDIUM: BusinessImpact.MODERATE,
    PartCriticality.LOW: BusinessImpact.MINIMAL
}

LEVEL_ORDER = [UrgencyLevel.LOW, UrgencyLevel.MEDIUM, UrgencyLevel.HIGH, UrgencyLevel.CRITICAL]


def _stock_ratio(current_stock: float, reorder_point: float) -> float:
    if reorder_point > 0:
        return current_stock / reorder_point
    # Nothing on hand against a zero reorder point is as urgent as it gets
    return 0.0 if current_stock <= 0 else math.inf


def _level_for_score(score: float, thresholds: Dict) -> UrgencyLevel:
    if score >= thresholds['critical']:
        return UrgencyLevel.CRITICAL
    elif score >= thresholds['high']:
        return UrgencyLevel.HIGH
    elif score >= thresholds['medium']:
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def classify_urgency(
    current_stock: float,
    rop_calc: ReorderPointCalculation,
    pattern: DemandPattern,
    ranking: SupplierRanking,
    category: str,
    override: Optional[Union[UrgencyLevel, str]] = None,
    today: Optional[date] = None,
    weights: Dict = URGENCY_WEIGHTS,
    thresholds: Dict = URGENCY_THRESHOLDS
) -> UrgencyClassification:
    """Classify how urgently a part needs replenishing.

    Five weighted factors (stock level, demand spike, lead time, seasonality,
    supplier risk) give a 0-100 score mapped onto a level. Stock at or below
    the escalation ratio keeps the level at high or above. An explicit
    override replaces the level entirely.

    Args:
        current_stock: Units on hand
        rop_calc: Reorder point calculation
        pattern: Demand pattern
        ranking: Supplier ranking (the top supplier's risks count)
        category: Part category
        override: Optional level forced by the caller
        today: Reference date (default today)
        weights: Factor weights
        thresholds: Urgency thresholds

    Returns:
        UrgencyClassification
    """
    if today is None:
        today = date.today()

    factors = []

    # Stock level
    ratio = _stock_ratio(current_stock, rop_calc.reorder_point)
    stock_impact = thresholds['stock_above_reorder_impact']
    for upper, impact in thresholds['stock_bands']:
        if ratio <= upper:
            stock_impact = impact
            break

    if math.isinf(ratio):
        stock_description = 'Reorder point is zero with stock on hand'
    else:
        stock_description = f"Current stock is {ratio * 100:.0f}% of reorder point"

    factors.append(UrgencyFactor(
        type=UrgencyFactorType.STOCK_LEVEL,
        description=stock_description,
        impact=stock_impact,
        weight=weights['stock_level']
    ))

    # Demand spike
    demand_impact = thresholds['demand_base_impact']
    if pattern.trend.direction == TrendDirection.INCREASING:
        demand_impact = thresholds['demand_increasing_impact']

    cutoff = today - timedelta(days=thresholds['anomaly_recency_days'])
    recent_anomalies = [anomaly for anomaly in pattern.anomalies if anomaly.date > cutoff]
    if recent_anomalies:
        demand_impact = max(demand_impact, thresholds['demand_anomaly_impact'])

    factors.append(UrgencyFactor(
        type=UrgencyFactorType.DEMAND_SPIKE,
        description=(f"Demand trend: {pattern.trend.direction.value}, "
                     f"{len(recent_anomalies)} recent anomalies"),
        impact=demand_impact,
        weight=weights['demand_spike']
    ))

    # Lead time
    lead_time = rop_calc.lead_time_days
    lead_time_impact = min(
        100.0,
        lead_time / thresholds['lead_time_reference_days'] * thresholds['lead_time_reference_impact']
    )
    factors.append(UrgencyFactor(
        type=UrgencyFactorType.LEAD_TIME,
        description=f"Average lead time: {lead_time:g} days",
        impact=lead_time_impact,
        weight=weights['lead_time']
    ))

    # Seasonality
    seasonal_impact = thresholds['seasonal_base_impact']
    seasonality = pattern.seasonality
    if seasonality.detected:
        index = seasonality.indices.get(f"{today.month:02d}", 1.0)
        if index > thresholds['seasonal_peak_index']:
            seasonal_impact = thresholds['seasonal_peak_impact']
        elif index < thresholds['seasonal_low_index']:
            seasonal_impact = thresholds['seasonal_low_impact']

    factors.append(UrgencyFactor(
        type=UrgencyFactorType.SEASONALITY,
        description=f"Seasonal factor: {'detected' if seasonality.detected else 'none'}",
        impact=seasonal_impact,
        weight=weights['seasonality']
    ))

    # Supplier risk
    risk_count = len(ranking.top.risk_factors) if ranking.top else 0
    factors.append(UrgencyFactor(
        type=UrgencyFactorType.SUPPLIER_RISK,
        description=f"{risk_count} supplier risk factors identified",
        impact=min(100.0, risk_count * thresholds['risk_factor_impact']),
        weight=weights['supplier_risk']
    ))

    score = sum(factor.impact * factor.weight for factor in factors)

    if override:
        level = override if isinstance(override, UrgencyLevel) else UrgencyLevel(str(override).lower())
    else:
        level = _level_for_score(score, thresholds)
        if ratio <= thresholds['escalation_stock_ratio'] and LEVEL_ORDER.index(level) < LEVEL_ORDER.index(UrgencyLevel.HIGH):
            level = UrgencyLevel.HIGH

    daily_demand = pattern.variability.mean_demand / 30
    if daily_demand > 0:
        time_to_stockout = current_stock / daily_demand
    else:
        time_to_stockout = float(thresholds['no_demand_stockout_days'])

    return UrgencyClassification(
        level=level,
        score=score,
        factors=factors,
        time_to_stockout=time_to_stockout,
        business_impact=BUSINESS_IMPACT_BY_CRITICALITY[PartCriticality.from_category(category)],
        overridden=bool(override)
    )


def resolve_unit_cost(ranking: SupplierRanking, part=None, default_unit_cost: Optional[float] = None) -> float:
    """Unit cost of the top-ranked supplier, else the part's cost, else the configured default."""
    top = ranking.top
    if top is not None and top.cost_performance.average_unit_cost > 0:
        return top.cost_performance.average_unit_cost

    part_cost = getattr(part, 'unit_cost', None)
    if part_cost:
        return float(part_cost)

    if default_unit_cost is None:
        default_unit_cost = config.recommendation_config['default_unit_cost']
    return float(default_unit_cost)


def optimize_cost_and_quantity(
    current_stock: float,
    rop_calc: ReorderPointCalculation,
    pattern: DemandPattern,
    ranking: SupplierRanking,
    part=None,
    max_budget: Optional[float] = None,
    ordering_cost: Optional[float] = None,
    carrying_cost_per_unit: Optional[float] = None,
    default_unit_cost: Optional[float] = None,
    thresholds: Dict = COST_OPTIMIZATION_THRESHOLDS
) -> CostOptimization:
    """Choose the order quantity and cost it.

    Args:
        current_stock: Units on hand
        rop_calc: Reorder point calculation
        pattern: Demand pattern
        ranking: Supplier ranking
        part: Spare part (fallback unit cost)
        max_budget: Optional spending ceiling
        ordering_cost: Cost of placing one order
        carrying_cost_per_unit: Annual cost of holding one unit
        default_unit_cost: Unit cost when neither supplier nor part has one
        thresholds: Cost optimization thresholds

    Returns:
        CostOptimization
    """
    rec_config = config.recommendation_config
    if ordering_cost is None:
        ordering_cost = rec_config['ordering_cost']
    if carrying_cost_per_unit is None:
        carrying_cost_per_unit = rec_config['carrying_cost_per_unit']

    savings = []

    base_quantity = max(rop_calc.reorder_point - current_stock, 0)
    quantity = base_quantity

    annual_demand = pattern.variability.mean_demand * 12
    eoq = calculate_eoq(annual_demand, ordering_cost, carrying_cost_per_unit)

    if eoq.eoq > base_quantity * thresholds['eoq_trigger_ratio']:
        quantity = min(eoq.eoq, base_quantity * thresholds['max_base_multiple'])
        savings.append(f"Consider EOQ of {eoq.eoq} units for optimal ordering costs")

    unit_cost = resolve_unit_cost(ranking, part, default_unit_cost)

    if max_budget is not None and quantity * unit_cost > max_budget:
        quantity = max(0, math.floor(max_budget / unit_cost))
        savings.append('Quantity reduced due to budget constraints')

    alternatives = []
    top = ranking.top
    for supplier in ranking.rankings[:thresholds['alternatives']]:
        tradeoffs = []

        lead_time_gap = supplier.delivery_performance.average_lead_time - top.delivery_performance.average_lead_time
        if lead_time_gap > 0:
            tradeoffs.append(f"{lead_time_gap:.1f} days longer lead time")

        quality_gap = top.quality_metrics.quality_rating - supplier.quality_metrics.quality_rating
        if quality_gap > 0:
            tradeoffs.append(f"{quality_gap:.1f} points lower quality rating")

        supplier_cost = supplier.cost_performance.average_unit_cost or unit_cost
        alternatives.append(SupplierAlternative(
            quantity=quantity,
            supplier=supplier.supplier_id,
            unit_cost=supplier_cost,
            total_cost=quantity * supplier_cost,
            tradeoffs=tradeoffs
        ))

    if quantity < annual_demand * thresholds['volume_discount_share']:
        savings.append('Consider larger quantities for potential volume discounts')

    return CostOptimization(
        recommended_quantity=quantity,
        unit_cost=unit_cost,
        total_cost=quantity * unit_cost,
        alternatives=alternatives,
        cost_savings_opportunities=savings,
        eoq=eoq.eoq
    )


def select_supplier(ranking: SupplierRanking, preference: Optional[str] = None) -> SupplierSelection:
    """Select the supplier to order from.

    Args:
        ranking: Supplier ranking
        preference: Supplier ID requested by the caller

    Returns:
        SupplierSelection

    Raises:
        NoSuppliersError: If the ranking is empty
    """
    if preference:
        preferred = ranking.find(preference)
        if preferred is not None and preferred.recommendation != SupplierRecommendation.AVOID:
            return SupplierSelection(supplier_id=preference, reasoning='User-specified preferred supplier')

    if ranking.recommended_supplier.supplier_id:
        return SupplierSelection(
            supplier_id=ranking.recommended_supplier.supplier_id,
            reasoning=ranking.recommended_supplier.reasoning
        )

    if ranking.top is not None:
        return SupplierSelection(
            supplier_id=ranking.top.supplier_id,
            reasoning='Best available supplier based on performance metrics'
        )

    raise NoSuppliersError(details={'part_number': ranking.part_number})


def calculate_order_date(
    urgency: UrgencyClassification,
    lead_time_days: float,
    today: Optional[date] = None,
    buffers: Dict = ORDER_DATE_BUFFER_DAYS
) -> date:
    """Latest sensible order date: today for critical, else stockout minus lead time and buffer."""
    if today is None:
        today = date.today()

    if urgency.level == UrgencyLevel.CRITICAL:
        return today

    days = max(0.0, urgency.time_to_stockout - lead_time_days - buffers[urgency.level.value])
    return today + timedelta(days=int(days))


def calculate_overall_confidence(
    rop_calc: ReorderPointCalculation,
    pattern: DemandPattern,
    ranking: SupplierRanking,
    narrative: NarrativeResult,
    weights: Dict = CONFIDENCE_WEIGHTS
) -> float:
    """Aggregate component confidences; the result is capped."""
    confidence = weights['base']
    confidence += rop_calc.confidence * weights['reorder_point']
    confidence += pattern.forecastability.score * weights['forecastability']
    confidence += (ranking.recommended_supplier.confidence or 0.0) * weights['supplier']
    confidence += narrative.confidence * weights['reasoning']

    return clip(confidence, 0.0, weights['cap'])


def build_reasoning_text(
    narrative: NarrativeResult,
    urgency: UrgencyClassification,
    cost: CostOptimization
) -> str:
    sections = [
        f"Analysis: {narrative.recommendation}",
        f"Urgency Level: {urgency.level.value.upper()} ({urgency.score:.1f}/100)",
        f"Key factors: {'; '.join(factor.description for factor in urgency.factors)}",
        f"Quantity Optimization: {cost.recommended_quantity:g} units at ${cost.unit_cost:.2f} each"
    ]

    if cost.cost_savings_opportunities:
        sections.append(f"Cost Savings: {'; '.join(cost.cost_savings_opportunities)}")

    if narrative.reasoning:
        sections.append(f"Detailed Analysis: {'; '.join(narrative.reasoning)}")

    return ' | '.join(sections)


def generate_recommendation_id(timestamp: Optional[float] = None) -> str:
    """Recommendation ID of the form REC-<base36 millis>-<random>."""
    if timestamp is None:
        timestamp = time.time()
    millis = int(timestamp * 1000)
    return f"REC-{to_base36(millis)}-{uuid.uuid4().hex[:6]}".upper()


class RecommendationService:
    """Service for generating replenishment recommendations for single parts."""

    def __init__(
        self,
        data_service,
        narrative_service: Optional[NarrativeService] = None,
        demand_analyzer: Optional[DemandAnalyzer] = None,
        supplier_evaluator: Optional[SupplierEvaluator] = None,
        calculator: Optional[ReorderPointCalculator] = None,
        urgency_weights: Dict = None,
        urgency_thresholds: Dict = None
    ):
        """Initialize the recommendation service.

        Args:
            data_service: Data access (parts, history, suppliers, persistence)
            narrative_service: Narrative reasoning (default rule-based)
            demand_analyzer: Demand analyzer (default bound to data_service)
            supplier_evaluator: Supplier evaluator (default bound to data_service)
            calculator: Reorder point calculator
            urgency_weights: Urgency factor weights
            urgency_thresholds: Urgency thresholds
        """
        self.data_service = data_service
        self.narrative_service = narrative_service or RuleBasedNarrativeService()
        self.fallback_narrative = RuleBasedNarrativeService()
        self.demand_analyzer = demand_analyzer or DemandAnalyzer(data_service)
        self.supplier_evaluator = supplier_evaluator or SupplierEvaluator(data_service)
        self.calculator = calculator or ReorderPointCalculator()
        self.urgency_weights = urgency_weights or URGENCY_WEIGHTS
        self.urgency_thresholds = urgency_thresholds or URGENCY_THRESHOLDS

    def explain(self, context: NarrativeContext) -> NarrativeResult:
        """Narrative reasoning, falling back to the rule-based service on any failure."""
        try:
            return self.narrative_service.explain(context)
        except Exception as e:
            logger.warning(
                f"Narrative service failed for {context.part.part_number}, using rule-based reasoning: {str(e)}"
            )
            return self.fallback_narrative.explain(context)

    def _profile_metrics(self, supplier_id: str) -> Optional[SupplierMetrics]:
        """Nominal metrics from the supplier profile, for a supplier without purchase history."""
        try:
            metrics = self.data_service.get_supplier_metrics(supplier_id)
        except DataStoreError as e:
            logger.warning(f"Could not fetch profile metrics for supplier {supplier_id}: {str(e)}")
            return None

        if metrics is None or metrics.average_lead_time <= 0:
            return None
        return metrics

    def generate_recommendation(
        self,
        request: RecommendationRequest,
        session_context: Optional[SessionContext] = None
    ) -> ReplenishmentRecommendation:
        """Generate and save a replenishment recommendation.

        Args:
            request: Recommendation request
            session_context: Optional caller-owned working memory

        Returns:
            ReplenishmentRecommendation with status pending

        Raises:
            ValidationError: If the request is malformed
            PartNotFoundError: If the part does not exist
            NoSuppliersError: If no supplier has ever supplied the part
        """
        part_number = request.part_number
        if not part_number:
            raise ValidationError('Part number is required', details={'field': 'part_number'})
        if request.max_budget is not None and request.max_budget < 0:
            raise ValidationError(
                'Budget cannot be negative',
                details={'field': 'max_budget', 'value': request.max_budget}
            )

        part = self.data_service.get_spare_part(part_number)
        if part is None:
            raise PartNotFoundError(details={'part_number': part_number})

        pattern = self.demand_analyzer.analyze(part_number)
        ranking = self.supplier_evaluator.rank_for_part(part_number)

        top = ranking.top
        metrics = None
        if top is not None:
            metrics = to_supplier_metrics(top) if top.has_history else self._profile_metrics(top.supplier_id)

        rop_calc = self.calculator.calculate(part, pattern, metrics)

        validation = self.calculator.validate(rop_calc, part.category)
        for issue in validation.errors + validation.warnings:
            logger.warning(f"Reorder point check for {part_number}: {issue.message}")

        urgency = classify_urgency(
            request.current_stock,
            rop_calc,
            pattern,
            ranking,
            part.category,
            request.urgency_override,
            weights=self.urgency_weights,
            thresholds=self.urgency_thresholds
        )

        cost = optimize_cost_and_quantity(
            request.current_stock,
            rop_calc,
            pattern,
            ranking,
            part,
            request.max_budget
        )

        selection = select_supplier(ranking, request.supplier_preference)

        if session_context is not None:
            session_context.remember('demand_pattern', pattern)
            session_context.remember('supplier_ranking', ranking)
            session_context.remember('reorder_point', rop_calc)
            session_context.remember('urgency', urgency)

        narrative = self.explain(NarrativeContext(
            part=part,
            current_stock=request.current_stock,
            reorder_point=rop_calc,
            demand_pattern=pattern,
            supplier_ranking=ranking,
            urgency=urgency,
            cost=cost,
            session=session_context
        ))

        confidence = calculate_overall_confidence(rop_calc, pattern, ranking, narrative)

        today = date.today()
        order_date = calculate_order_date(urgency, rop_calc.lead_time_days, today)
        if request.required_delivery_date is not None:
            latest = request.required_delivery_date - timedelta(days=int(math.ceil(rop_calc.lead_time_days)))
            order_date = max(today, min(order_date, latest))

        estimated_cost = cost.total_cost
        for alternative in cost.alternatives:
            if alternative.supplier == selection.supplier_id:
                estimated_cost = alternative.total_cost
                break

        recommendation = ReplenishmentRecommendation(
            part_number=part_number,
            recommendation_id=generate_recommendation_id(),
            recommended_quantity=cost.recommended_quantity,
            suggested_order_date=order_date,
            preferred_supplier=selection.supplier_id,
            estimated_cost=estimated_cost,
            urgency_level=urgency.level,
            reasoning=build_reasoning_text(narrative, urgency, cost),
            confidence=confidence,
            status=RecommendationStatus.PENDING,
            created_at=datetime.now()
        )

        self.data_service.save_recommendation(recommendation)

        logger.info(
            f"Recommendation {recommendation.recommendation_id} for {part_number}: "
            f"{recommendation.recommended_quantity:g} units from {recommendation.preferred_supplier}, "
            f"urgency {recommendation.urgency_level.value}, confidence {recommendation.confidence:.2f}"
        )
        return recommendation
