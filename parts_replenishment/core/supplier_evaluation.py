# parts_replenishment/core/supplier_evaluation.py
"""Supplier performance evaluation and ranking.

Each supplier is scored 0-100 on delivery, cost, quality, relationship and
capacity from its purchase history and its profile. A cohort of suppliers for
one part is then ranked and summarised in a market analysis.
"""
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from parts_replenishment.core.constants import (
    SUPPLIER_SCORE_WEIGHTS, SUPPLIER_THRESHOLDS, RECOMMENDED_SUPPLIER_CONFIDENCE
)
from parts_replenishment.core.types import (
    DeliveryPerformance, CostPerformance, QualityMetrics, RelationshipFactors,
    CapacityAssessment, RiskFactor, SupplierPerformanceAnalysis, MarketAnalysis,
    RecommendedSupplier, SupplierRanking, SupplierMetrics
)
from parts_replenishment.config import config
from parts_replenishment.exceptions import DataStoreError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.models import (
    TransactionType, PerformanceTrend, CostTrend, SupplierRecommendation,
    RiskType, RiskSeverity, CompetitivePosition
)
from parts_replenishment.utils.math_utils import mean, std_dev, split_halves, percent_change, clip

logger = get_logger(__name__)

NO_HISTORY_RISK = 'No historical data available'
NO_SUPPLIERS_REASONING = 'No suppliers found for this part'


def _series_direction(values: Sequence[float], thresholds: Dict = SUPPLIER_THRESHOLDS) -> int:
    """Compare the first and second half of a short series.

    Returns:
        1 if the series rose by more than the threshold, -1 if it fell, else 0
    """
    if len(values) < 3:
        return 0

    first_half, second_half = split_halves(values)
    change = percent_change(mean(first_half), mean(second_half))

    if abs(change) < thresholds['trend_change_pct']:
        return 0
    return 1 if change > 0 else -1


def _recent(values: Sequence[float], thresholds: Dict = SUPPLIER_THRESHOLDS) -> List[float]:
    window = thresholds['trend_window']
    return list(values[-window:])


def _by_date(purchases: Sequence) -> List:
    return sorted(purchases, key=lambda record: record.transaction_date)


def analyze_delivery_performance(
    purchases: Sequence,
    default_lead_time_days: float = 14,
    nominal_on_time_rate: Optional[float] = None,
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> DeliveryPerformance:
    """Analyze lead times and on-time delivery of a supplier's purchases.

    A purchase without an expected delivery date is expected after
    default_lead_time_days. A purchase without a delivered date contributes
    its expected lead time and is not counted for on-time delivery; when no
    purchase is tracked, nominal_on_time_rate is used (or 100%).

    Args:
        purchases: Purchase records of one supplier
        default_lead_time_days: Lead time assumed when no expected date exists
        nominal_on_time_rate: On-time percentage from supplier master data
        thresholds: Supplier thresholds

    Returns:
        DeliveryPerformance
    """
    if not purchases:
        return DeliveryPerformance()

    lead_times = []
    tracked = 0
    on_time = 0

    for record in _by_date(purchases):
        ordered = record.transaction_date
        expected = record.expected_delivery_date or ordered + timedelta(days=default_lead_time_days)

        if record.delivered_date:
            tracked += 1
            if record.delivered_date <= expected:
                on_time += 1
            lead_times.append(float((record.delivered_date - ordered).days))
        else:
            lead_times.append(float((expected - ordered).days))

    if tracked:
        on_time_rate = on_time / tracked * 100.0
    elif nominal_on_time_rate is not None:
        on_time_rate = float(nominal_on_time_rate)
    else:
        on_time_rate = 100.0

    average_lead_time = mean(lead_times)
    variability = std_dev(lead_times)
    consistency = max(0.0, 1 - variability / average_lead_time) if average_lead_time > 0 else 0.0

    reliability = (on_time_rate * thresholds['on_time_weight'] +
                   consistency * 100 * thresholds['consistency_weight'])

    # Shorter lead times are better
    direction = _series_direction(_recent(lead_times, thresholds), thresholds)
    if direction < 0:
        trend = PerformanceTrend.IMPROVING
    elif direction > 0:
        trend = PerformanceTrend.DECLINING
    else:
        trend = PerformanceTrend.STABLE

    return DeliveryPerformance(
        on_time_delivery_rate=on_time_rate,
        average_lead_time=average_lead_time,
        lead_time_variability=variability,
        lead_time_consistency=consistency,
        delivery_reliability_score=reliability,
        recent_trend=trend
    )


def calculate_price_competitiveness(average_unit_cost: float, market_average_price: Optional[float]) -> float:
    """Price competitiveness index: 100 x market average / supplier price.

    100 means priced at the market average, above 100 cheaper than the market.
    Without a market reference (or a usable price) the index is 100.
    """
    if not market_average_price or market_average_price <= 0 or average_unit_cost <= 0:
        return 100.0
    return 100.0 * market_average_price / average_unit_cost


def calculate_cost_score(price_competitiveness: float) -> float:
    """0-100 cost sub-score from the competitiveness index.

    Scores fall with the distance below 100; a supplier cheaper than the
    market scores the same as one priced at it.
    """
    return clip(100.0 - max(0.0, 100.0 - price_competitiveness), 0.0, 100.0)


def analyze_cost_performance(
    purchases: Sequence,
    market_average_price: Optional[float] = None,
    payment_terms: str = 'Net 30',
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> CostPerformance:
    """Analyze unit cost level, stability and trend of a supplier's purchases.

    Args:
        purchases: Purchase records of one supplier
        market_average_price: Average unit cost across the supplier cohort
        payment_terms: Payment terms from supplier master data
        thresholds: Supplier thresholds

    Returns:
        CostPerformance
    """
    if not purchases:
        return CostPerformance()

    ordered = _by_date(purchases)
    unit_costs = [float(record.unit_price or 0.0) for record in ordered]

    average_cost = mean(unit_costs)
    stability = max(0.0, 1 - std_dev(unit_costs) / average_cost) if average_cost > 0 else 0.0

    direction = _series_direction(_recent(unit_costs, thresholds), thresholds)
    if direction > 0:
        cost_trend = CostTrend.INCREASING
    elif direction < 0:
        cost_trend = CostTrend.DECREASING
    else:
        cost_trend = CostTrend.STABLE

    competitiveness = calculate_price_competitiveness(average_cost, market_average_price)

    opportunities = []
    largest = max(ordered, key=lambda record: record.quantity or 0.0)
    if len(ordered) > 1 and (largest.unit_price or 0.0) < average_cost:
        opportunities.append('Volume discount available')
    if competitiveness > 100:
        opportunities.append('Priced below market average')
    if cost_trend == CostTrend.DECREASING:
        opportunities.append('Prices trending down - consider forward buying')

    return CostPerformance(
        average_unit_cost=average_cost,
        price_competitiveness=competitiveness,
        price_stability=stability,
        cost_trend=cost_trend,
        total_cost_of_ownership=average_cost * thresholds['tco_multiplier'],
        payment_terms=payment_terms or 'Net 30',
        discount_opportunities=opportunities
    )


def analyze_quality_metrics(purchases: Sequence, thresholds: Dict = SUPPLIER_THRESHOLDS) -> QualityMetrics:
    """Derive quality rating, defect and return rates from quality scores."""
    if not purchases:
        return QualityMetrics()

    scores = [float(record.quality_score or 0.0) * 100 for record in _by_date(purchases)]
    rating = mean(scores)

    defect_rate = max(0.0, thresholds['max_defect_rate'] - rating / thresholds['quality_to_defect_divisor'])

    direction = _series_direction(scores, thresholds)
    if direction > 0:
        trend = PerformanceTrend.IMPROVING
    elif direction < 0:
        trend = PerformanceTrend.DECLINING
    else:
        trend = PerformanceTrend.STABLE

    return QualityMetrics(
        quality_rating=rating,
        defect_rate=defect_rate,
        return_rate=defect_rate * thresholds['return_to_defect_ratio'],
        quality_trend=trend,
        quality_incidents=int(math.floor(defect_rate / 2))
    )


def build_relationship_factors(profile=None, thresholds: Dict = SUPPLIER_THRESHOLDS) -> RelationshipFactors:
    """Relationship factors are taken as given from the supplier profile."""
    if profile is None:
        neutral = thresholds['neutral_profile_score']
        return RelationshipFactors(
            communication_score=neutral,
            responsiveness=24.0,
            flexibility=neutral,
            strategic_alignment=neutral,
            contract_compliance=neutral,
            innovation_support=neutral
        )

    return RelationshipFactors(
        communication_score=float(profile.communication_score or 0.0),
        responsiveness=float(profile.responsiveness_hours or 0.0),
        flexibility=float(profile.flexibility or 0.0),
        strategic_alignment=float(profile.strategic_alignment or 0.0),
        contract_compliance=float(profile.contract_compliance or 0.0),
        innovation_support=float(profile.innovation_support or 0.0)
    )


def build_capacity_assessment(profile=None, thresholds: Dict = SUPPLIER_THRESHOLDS) -> CapacityAssessment:
    """Capacity assessment is taken as given from the supplier profile."""
    if profile is None:
        neutral = thresholds['neutral_profile_score']
        return CapacityAssessment(
            production_capacity=0.0,
            current_utilization=0.0,
            scalability_score=neutral,
            financial_stability=neutral
        )

    return CapacityAssessment(
        production_capacity=float(profile.production_capacity or 0.0),
        current_utilization=float(profile.current_utilization or 0.0),
        scalability_score=float(profile.scalability_score or 0.0),
        financial_stability=float(profile.financial_stability or 0.0)
    )


def calculate_overall_score(
    delivery: DeliveryPerformance,
    cost: CostPerformance,
    quality: QualityMetrics,
    relationship: RelationshipFactors,
    capacity: CapacityAssessment,
    weights: Dict = SUPPLIER_SCORE_WEIGHTS
) -> float:
    """Weighted 0-100 supplier score.

    The cost component rewards a competitiveness index at or above 100
    rather than the raw unit cost.
    """
    delivery_score = delivery.delivery_reliability_score
    cost_score = calculate_cost_score(cost.price_competitiveness)
    quality_score = quality.quality_rating
    relationship_score = (
        relationship.communication_score +
        relationship.flexibility +
        relationship.strategic_alignment +
        relationship.contract_compliance
    ) / 4
    capacity_score = (capacity.scalability_score + capacity.financial_stability) / 2

    score = (
        delivery_score * weights['delivery'] +
        cost_score * weights['cost'] +
        quality_score * weights['quality'] +
        relationship_score * weights['relationship'] +
        capacity_score * weights['capacity']
    )

    return float(round(clip(score, 0.0, 100.0)))


def assess_risk_factors(
    delivery: DeliveryPerformance,
    quality: QualityMetrics,
    capacity: CapacityAssessment,
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> List[RiskFactor]:
    """List the supply risks implied by the performance metrics.

    Args:
        delivery: Delivery performance
        quality: Quality metrics
        capacity: Capacity assessment
        thresholds: Supplier thresholds

    Returns:
        List of RiskFactor
    """
    risks = []

    if delivery.on_time_delivery_rate < thresholds['on_time_medium_risk']:
        risks.append(RiskFactor(
            type=RiskType.OPERATIONAL,
            description='Poor on-time delivery performance',
            severity=(RiskSeverity.HIGH if delivery.on_time_delivery_rate < thresholds['on_time_high_risk']
                      else RiskSeverity.MEDIUM),
            probability='high',
            impact='Production delays and stockouts',
            mitigation='Increase safety stock, develop backup suppliers'
        ))

    if quality.defect_rate > thresholds['defect_medium_risk']:
        risks.append(RiskFactor(
            type=RiskType.OPERATIONAL,
            description='High defect rate',
            severity=(RiskSeverity.HIGH if quality.defect_rate > thresholds['defect_high_risk']
                      else RiskSeverity.MEDIUM),
            probability='medium',
            impact='Quality issues and customer complaints',
            mitigation='Implement quality agreements, increase inspection'
        ))

    if capacity.financial_stability < thresholds['financial_stability_risk']:
        risks.append(RiskFactor(
            type=RiskType.FINANCIAL,
            description='Financial stability concerns',
            severity=RiskSeverity.MEDIUM,
            probability='medium',
            impact='Supply disruption due to financial issues',
            mitigation='Monitor financial health, secure backup suppliers'
        ))

    if capacity.current_utilization > thresholds['utilization_risk']:
        risks.append(RiskFactor(
            type=RiskType.OPERATIONAL,
            description='High capacity utilization',
            severity=RiskSeverity.MEDIUM,
            probability='high',
            impact='Inability to handle demand increases',
            mitigation='Discuss capacity expansion plans, diversify suppliers'
        ))

    return risks


def determine_recommendation(
    overall_score: float,
    risk_factors: List[RiskFactor],
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> SupplierRecommendation:
    severe = [risk for risk in risk_factors
              if risk.severity in (RiskSeverity.HIGH, RiskSeverity.CRITICAL)]

    if severe:
        if overall_score > thresholds['monitor_score_with_high_risk']:
            return SupplierRecommendation.MONITOR
        return SupplierRecommendation.AVOID

    if overall_score >= thresholds['preferred_score']:
        return SupplierRecommendation.PREFERRED
    elif overall_score >= thresholds['acceptable_score']:
        return SupplierRecommendation.ACCEPTABLE
    return SupplierRecommendation.MONITOR


def _supplier_name(supplier_id: str, profile=None) -> str:
    if profile is not None and profile.name:
        return profile.name
    return f"Supplier {supplier_id}"


def create_empty_supplier_analysis(supplier_id: str, profile=None) -> SupplierPerformanceAnalysis:
    """Analysis for a supplier with no purchase history: score 0, avoid."""
    return SupplierPerformanceAnalysis(
        supplier_id=supplier_id,
        supplier_name=_supplier_name(supplier_id, profile),
        analysis_date=datetime.now(),
        delivery_performance=DeliveryPerformance(),
        cost_performance=CostPerformance(),
        quality_metrics=QualityMetrics(),
        relationship_factors=RelationshipFactors(),
        capacity_assessment=CapacityAssessment(),
        overall_score=0.0,
        recommendation=SupplierRecommendation.AVOID,
        risk_factors=[RiskFactor(
            type=RiskType.OPERATIONAL,
            description=NO_HISTORY_RISK,
            severity=RiskSeverity.HIGH,
            probability='high',
            impact='Cannot assess supplier reliability',
            mitigation='Conduct supplier assessment before engagement'
        )],
        order_count=0,
        has_history=False
    )


def _purchases_for(records: Sequence, part_number: Optional[str] = None) -> List:
    purchases = []
    for record in records:
        kind = record.transaction_type
        if not isinstance(kind, TransactionType):
            kind = TransactionType.from_string(kind)
        if kind != TransactionType.PURCHASE:
            continue
        if part_number and record.part_number != part_number:
            continue
        purchases.append(record)
    return purchases


def evaluate_supplier(
    supplier_id: str,
    purchases: Sequence,
    profile=None,
    part_number: Optional[str] = None,
    market_average_price: Optional[float] = None,
    default_lead_time_days: float = 14,
    weights: Dict = SUPPLIER_SCORE_WEIGHTS,
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> SupplierPerformanceAnalysis:
    """Evaluate one supplier from its purchase history.

    Args:
        supplier_id: Supplier ID
        purchases: Transaction records of the supplier (non-purchases ignored)
        profile: Optional supplier profile with relationship and capacity inputs
        part_number: Restrict the history to this part
        market_average_price: Cohort average unit cost for price competitiveness
        default_lead_time_days: Lead time assumed when no expected date exists
        weights: Score weights
        thresholds: Supplier thresholds

    Returns:
        SupplierPerformanceAnalysis (ranking 0 until ranked)
    """
    relevant = _purchases_for(purchases, part_number)

    if not relevant:
        return create_empty_supplier_analysis(supplier_id, profile)

    delivery = analyze_delivery_performance(
        relevant,
        default_lead_time_days,
        profile.on_time_delivery_rate if profile is not None else None,
        thresholds
    )
    cost = analyze_cost_performance(
        relevant,
        market_average_price,
        profile.payment_terms if profile is not None else 'Net 30',
        thresholds
    )
    quality = analyze_quality_metrics(relevant, thresholds)
    relationship = build_relationship_factors(profile, thresholds)
    capacity = build_capacity_assessment(profile, thresholds)

    overall_score = calculate_overall_score(delivery, cost, quality, relationship, capacity, weights)
    risks = assess_risk_factors(delivery, quality, capacity, thresholds)

    return SupplierPerformanceAnalysis(
        supplier_id=supplier_id,
        supplier_name=_supplier_name(supplier_id, profile),
        analysis_date=datetime.now(),
        delivery_performance=delivery,
        cost_performance=cost,
        quality_metrics=quality,
        relationship_factors=relationship,
        capacity_assessment=capacity,
        overall_score=overall_score,
        recommendation=determine_recommendation(overall_score, risks, thresholds),
        risk_factors=risks,
        order_count=len(relevant),
        has_history=True
    )


def identify_market_trends(
    analyses: List[SupplierPerformanceAnalysis],
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> List[str]:
    """Describe trends shared by a majority of the cohort."""
    trends = []
    cutoff = len(analyses) * thresholds['market_trend_share']

    def count(predicate):
        return len([a for a in analyses if predicate(a)])

    if count(lambda a: a.cost_performance.cost_trend == CostTrend.INCREASING) > cutoff:
        trends.append('Market prices trending upward')
    elif count(lambda a: a.cost_performance.cost_trend == CostTrend.DECREASING) > cutoff:
        trends.append('Market prices trending downward')

    if count(lambda a: a.delivery_performance.recent_trend == PerformanceTrend.IMPROVING) > cutoff:
        trends.append('Delivery performance improving across suppliers')
    elif count(lambda a: a.delivery_performance.recent_trend == PerformanceTrend.DECLINING) > cutoff:
        trends.append('Delivery performance declining across suppliers')

    if count(lambda a: a.quality_metrics.quality_trend == PerformanceTrend.IMPROVING) > cutoff:
        trends.append('Quality improvements across supplier base')
    elif count(lambda a: a.quality_metrics.quality_trend == PerformanceTrend.DECLINING) > cutoff:
        trends.append('Quality concerns emerging across suppliers')

    return trends


def _range(values: List[float]) -> Dict[str, float]:
    return {'min': min(values), 'max': max(values), 'average': mean(values)}


def calculate_market_analysis(
    analyses: List[SupplierPerformanceAnalysis],
    thresholds: Dict = SUPPLIER_THRESHOLDS
) -> MarketAnalysis:
    """Summarise price, lead time and score levels across a supplier cohort.

    Args:
        analyses: Supplier analyses of the cohort
        thresholds: Supplier thresholds

    Returns:
        MarketAnalysis; concentration is the Herfindahl index of equal shares
    """
    if not analyses:
        return MarketAnalysis()

    average_score = mean([a.overall_score for a in analyses])
    if average_score >= thresholds['strong_market_score']:
        position = CompetitivePosition.STRONG
    elif average_score >= thresholds['moderate_market_score']:
        position = CompetitivePosition.MODERATE
    else:
        position = CompetitivePosition.WEAK

    share = 1.0 / len(analyses)

    return MarketAnalysis(
        competitive_position=position,
        price_range=_range([a.cost_performance.average_unit_cost for a in analyses]),
        lead_time_range=_range([a.delivery_performance.average_lead_time for a in analyses]),
        market_trends=identify_market_trends(analyses, thresholds),
        supplier_concentration=sum(share * share for _ in analyses)
    )


def select_recommended_supplier(
    ranked: List[SupplierPerformanceAnalysis],
    confidence_table: Dict = RECOMMENDED_SUPPLIER_CONFIDENCE
) -> RecommendedSupplier:
    """Pick the best preferred, else acceptable, else top-ranked supplier.

    Args:
        ranked: Supplier analyses sorted best first
        confidence_table: Confidence by recommendation tier

    Returns:
        RecommendedSupplier with up to three alternatives
    """
    if not ranked:
        return RecommendedSupplier(reasoning='No suppliers available')

    preferred = [a for a in ranked if a.recommendation == SupplierRecommendation.PREFERRED]
    acceptable = [a for a in ranked if a.recommendation == SupplierRecommendation.ACCEPTABLE]

    if preferred:
        chosen = preferred[0]
        confidence = confidence_table['preferred']
        reasoning = (f"Top-performing supplier with overall score of {chosen.overall_score:.0f}. "
                     f"Strong performance across all metrics.")
    elif acceptable:
        chosen = acceptable[0]
        confidence = confidence_table['acceptable']
        reasoning = (f"Best available supplier with overall score of {chosen.overall_score:.0f}. "
                     f"Acceptable performance but monitor closely.")
    else:
        chosen = ranked[0]
        confidence = confidence_table['fallback']
        reasoning = (f"Limited supplier options. Score of {chosen.overall_score:.0f} indicates "
                     f"significant risks. Consider supplier development or sourcing alternatives.")

    alternatives = [a.supplier_id for a in ranked if a.supplier_id != chosen.supplier_id][:3]

    return RecommendedSupplier(
        supplier_id=chosen.supplier_id,
        reasoning=reasoning,
        confidence=confidence,
        alternative_suppliers=alternatives
    )


def rank_suppliers(
    part_number: Optional[str],
    analyses: List[SupplierPerformanceAnalysis],
    thresholds: Dict = SUPPLIER_THRESHOLDS,
    confidence_table: Dict = RECOMMENDED_SUPPLIER_CONFIDENCE
) -> SupplierRanking:
    """Rank a cohort of supplier analyses, best first.

    Ties keep their input order. Ranks are assigned 1..n.
    """
    if not analyses:
        return SupplierRanking(
            part_number=part_number,
            rankings=[],
            market_analysis=MarketAnalysis(market_trends=['No supplier data available']),
            recommended_supplier=RecommendedSupplier(reasoning=NO_SUPPLIERS_REASONING)
        )

    ranked = sorted(analyses, key=lambda analysis: analysis.overall_score, reverse=True)
    for index, analysis in enumerate(ranked):
        analysis.ranking = index + 1

    return SupplierRanking(
        part_number=part_number,
        rankings=ranked,
        market_analysis=calculate_market_analysis(ranked, thresholds),
        recommended_supplier=select_recommended_supplier(ranked, confidence_table)
    )


def to_supplier_metrics(analysis: SupplierPerformanceAnalysis) -> SupplierMetrics:
    """Lead time metrics of an evaluated supplier, as the reorder point calculation needs them."""
    return SupplierMetrics(
        supplier_id=analysis.supplier_id,
        supplier_name=analysis.supplier_name,
        average_lead_time=analysis.delivery_performance.average_lead_time,
        on_time_delivery_rate=analysis.delivery_performance.on_time_delivery_rate,
        total_orders=analysis.order_count,
        price_stability=analysis.cost_performance.price_stability,
        quality_rating=analysis.quality_metrics.quality_rating,
        is_preferred=analysis.recommendation == SupplierRecommendation.PREFERRED
    )


class SupplierEvaluator:
    """Evaluate and rank suppliers using a purchase history data source.

    The data source must provide ``get_suppliers_for_part(part_number)``,
    ``get_purchase_history(supplier_id, part_number, months)`` and
    ``get_supplier_profile(supplier_id)``.
    """

    def __init__(
        self,
        data_source=None,
        weights: Dict = None,
        thresholds: Dict = None,
        confidence_table: Dict = None,
        lookback_months: Optional[int] = None,
        default_lead_time_days: Optional[float] = None
    ):
        supplier_config = config.supplier_config

        self.data_source = data_source
        self.weights = weights or SUPPLIER_SCORE_WEIGHTS
        self.thresholds = thresholds or SUPPLIER_THRESHOLDS
        self.confidence_table = confidence_table or RECOMMENDED_SUPPLIER_CONFIDENCE
        self.lookback_months = lookback_months or supplier_config['lookback_months']
        self.default_lead_time_days = default_lead_time_days or supplier_config['expected_lead_time_days']

    def _suppliers_for(self, part_number: str) -> List[str]:
        if self.data_source is None:
            return []
        try:
            return list(self.data_source.get_suppliers_for_part(part_number))
        except DataStoreError as e:
            logger.warning(f"Could not fetch suppliers for {part_number}: {str(e)}")
            return []

    def _history(self, supplier_id: str, part_number: Optional[str]) -> List:
        if self.data_source is None:
            return []
        try:
            return list(self.data_source.get_purchase_history(
                supplier_id, part_number, self.lookback_months
            ))
        except DataStoreError as e:
            logger.warning(f"Could not fetch purchase history for supplier {supplier_id}: {str(e)}")
            return []

    def _profile(self, supplier_id: str):
        if self.data_source is None:
            return None
        try:
            return self.data_source.get_supplier_profile(supplier_id)
        except DataStoreError as e:
            logger.warning(f"Could not fetch profile for supplier {supplier_id}: {str(e)}")
            return None

    def evaluate(
        self,
        supplier_id: str,
        part_number: Optional[str] = None,
        market_average_price: Optional[float] = None,
        purchases: Optional[Sequence] = None
    ) -> SupplierPerformanceAnalysis:
        """Evaluate one supplier, optionally restricted to one part."""
        if purchases is None:
            purchases = self._history(supplier_id, part_number)

        return evaluate_supplier(
            supplier_id,
            purchases,
            self._profile(supplier_id),
            part_number,
            market_average_price,
            self.default_lead_time_days,
            self.weights,
            self.thresholds
        )

    def rank_for_part(self, part_number: str) -> SupplierRanking:
        """Evaluate every supplier of a part and rank them.

        Args:
            part_number: Part number

        Returns:
            SupplierRanking; empty when the part has no suppliers
        """
        supplier_ids = self._suppliers_for(part_number)

        histories = {
            supplier_id: _purchases_for(self._history(supplier_id, part_number), part_number)
            for supplier_id in supplier_ids
        }

        supplier_prices = [
            mean([float(record.unit_price or 0.0) for record in history])
            for history in histories.values() if history
        ]
        market_average_price = mean(supplier_prices) if supplier_prices else None

        analyses = [
            self.evaluate(supplier_id, part_number, market_average_price, histories[supplier_id])
            for supplier_id in supplier_ids
        ]

        ranking = rank_suppliers(part_number, analyses, self.thresholds, self.confidence_table)

        logger.debug(
            f"Ranked {len(ranking.rankings)} suppliers for {part_number}; "
            f"recommended '{ranking.recommended_supplier.supplier_id}'"
        )
        return ranking
