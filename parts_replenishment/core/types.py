# parts_replenishment/core/types.py
"""Result types passed between the engine components.

Pure data classes, no I/O. Enum fields use the enums from
``parts_replenishment.models`` so that persisted and computed values share a
vocabulary.
"""
import enum
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from parts_replenishment.models import (
    TrendDirection, SeasonalPattern, VariabilityClass, VolatilityPattern,
    AnomalyType, PatternKind, CalculationMethod, PerformanceTrend, CostTrend,
    SupplierRecommendation, RiskType, RiskSeverity, CompetitivePosition,
    UrgencyLevel, UrgencyFactorType, BusinessImpact, RecommendationStatus,
    IssueSeverity
)


def _serialize(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


class Serializable:
    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return _serialize(asdict(self))


# Demand analysis

@dataclass
class TrendAnalysis(Serializable):
    direction: TrendDirection = TrendDirection.STABLE
    strength: float = 0.0
    change_points: List[date] = field(default_factory=list)
    confidence: float = 0.0
    monthly_growth_rate: float = 0.0


@dataclass
class SeasonalityAnalysis(Serializable):
    detected: bool = False
    pattern: SeasonalPattern = SeasonalPattern.NONE
    indices: Dict[str, float] = field(default_factory=dict)  # 'MM' -> index
    strength: float = 0.0
    confidence: float = 0.0
    peak_periods: List[str] = field(default_factory=list)
    low_periods: List[str] = field(default_factory=list)


@dataclass
class VariabilityAnalysis(Serializable):
    coefficient: float = 0.0
    classification: VariabilityClass = VariabilityClass.LOW
    volatility_pattern: VolatilityPattern = VolatilityPattern.CONSISTENT
    standard_deviation: float = 0.0
    mean_demand: float = 0.0


@dataclass
class AnomalyDetection(Serializable):
    date: date
    type: AnomalyType
    magnitude: float
    actual_value: float
    expected_value: float
    explanation: str = ''


@dataclass
class ForecastabilityScore(Serializable):
    score: float = 0.0
    challenges: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    confidence: float = 0.0


@dataclass
class DemandPattern(Serializable):
    part_number: str
    analysis_date: datetime
    kind: PatternKind
    trend: TrendAnalysis
    seasonality: SeasonalityAnalysis
    variability: VariabilityAnalysis
    anomalies: List[AnomalyDetection]
    forecastability: ForecastabilityScore
    monthly_demand: Dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.kind == PatternKind.EMPTY

    @property
    def mean_demand(self) -> float:
        return self.variability.mean_demand


@dataclass
class DemandForecast(Serializable):
    part_number: str
    forecast_date: date
    predicted_demand: int
    lower_bound: int
    upper_bound: int
    seasonality_factor: float
    model_version: str = '1.0.0'


# Reorder point and safety stock

@dataclass
class SupplierMetrics(Serializable):
    supplier_id: str
    average_lead_time: float
    on_time_delivery_rate: float  # percentage 0-100
    total_orders: int = 0
    supplier_name: str = ''
    price_stability: float = 0.0
    quality_rating: float = 0.0
    is_preferred: bool = False


@dataclass
class SafetyStockCalculation(Serializable):
    safety_stock: float
    z_score: float
    demand_std_dev: float
    lead_time_std_dev: float
    combined_std_dev: float
    service_level: float
    method: str = 'normal_distribution'
    reasoning: str = ''


@dataclass
class ReorderPointCalculation(Serializable):
    part_number: str
    calculation_date: datetime
    reorder_point: float
    safety_stock: float
    average_demand: float
    lead_time_days: float
    service_level: float
    demand_variability: float
    lead_time_variability: float
    calculation_method: CalculationMethod
    confidence: float
    reasoning: List[str] = field(default_factory=list)
    is_minimal: bool = False


@dataclass
class EOQResult(Serializable):
    eoq: int
    total_cost: float
    reasoning: str


@dataclass
class ServiceLevelCost(Serializable):
    service_level: float
    safety_stock: float
    carrying_cost: float
    stockout_cost: float
    total_cost: float


@dataclass
class ServiceLevelOptimization(Serializable):
    optimal_service_level: float
    costs: List[ServiceLevelCost]
    reasoning: List[str]


@dataclass
class ValidationIssue(Serializable):
    severity: IssueSeverity
    field: str
    message: str


@dataclass
class ValidationResult(Serializable):
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.WARNING]

    @property
    def recommendations(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.INFO]

    def add(self, severity: IssueSeverity, field_name: str, message: str):
        self.issues.append(ValidationIssue(severity, field_name, message))


# Supplier evaluation

@dataclass
class DeliveryPerformance(Serializable):
    on_time_delivery_rate: float = 0.0  # percentage
    average_lead_time: float = 0.0
    lead_time_variability: float = 0.0
    lead_time_consistency: float = 0.0
    delivery_reliability_score: float = 0.0
    recent_trend: PerformanceTrend = PerformanceTrend.STABLE


@dataclass
class CostPerformance(Serializable):
    average_unit_cost: float = 0.0
    price_competitiveness: float = 0.0
    price_stability: float = 0.0
    cost_trend: CostTrend = CostTrend.STABLE
    total_cost_of_ownership: float = 0.0
    payment_terms: str = 'Unknown'
    discount_opportunities: List[str] = field(default_factory=list)


@dataclass
class QualityMetrics(Serializable):
    quality_rating: float = 0.0
    defect_rate: float = 0.0
    return_rate: float = 0.0
    quality_trend: PerformanceTrend = PerformanceTrend.STABLE
    quality_incidents: int = 0


@dataclass
class RelationshipFactors(Serializable):
    communication_score: float = 0.0
    responsiveness: float = 0.0  # hours
    flexibility: float = 0.0
    strategic_alignment: float = 0.0
    contract_compliance: float = 0.0
    innovation_support: float = 0.0


@dataclass
class CapacityAssessment(Serializable):
    production_capacity: float = 0.0
    current_utilization: float = 0.0
    scalability_score: float = 0.0
    financial_stability: float = 0.0


@dataclass
class RiskFactor(Serializable):
    type: RiskType
    description: str
    severity: RiskSeverity
    probability: str
    impact: str
    mitigation: str


@dataclass
class SupplierPerformanceAnalysis(Serializable):
    supplier_id: str
    supplier_name: str
    analysis_date: datetime
    delivery_performance: DeliveryPerformance
    cost_performance: CostPerformance
    quality_metrics: QualityMetrics
    relationship_factors: RelationshipFactors
    capacity_assessment: CapacityAssessment
    overall_score: float
    recommendation: SupplierRecommendation
    risk_factors: List[RiskFactor] = field(default_factory=list)
    ranking: int = 0
    order_count: int = 0
    has_history: bool = True


@dataclass
class MarketAnalysis(Serializable):
    competitive_position: CompetitivePosition = CompetitivePosition.WEAK
    price_range: Dict[str, float] = field(default_factory=lambda: {'min': 0.0, 'max': 0.0, 'average': 0.0})
    lead_time_range: Dict[str, float] = field(default_factory=lambda: {'min': 0.0, 'max': 0.0, 'average': 0.0})
    market_trends: List[str] = field(default_factory=list)
    supplier_concentration: float = 0.0


@dataclass
class RecommendedSupplier(Serializable):
    supplier_id: str = ''
    reasoning: str = ''
    confidence: float = 0.0
    alternative_suppliers: List[str] = field(default_factory=list)


@dataclass
class SupplierRanking(Serializable):
    part_number: Optional[str]
    rankings: List[SupplierPerformanceAnalysis]
    market_analysis: MarketAnalysis
    recommended_supplier: RecommendedSupplier

    @property
    def top(self) -> Optional[SupplierPerformanceAnalysis]:
        return self.rankings[0] if self.rankings else None

    def find(self, supplier_id: str) -> Optional[SupplierPerformanceAnalysis]:
        for analysis in self.rankings:
            if analysis.supplier_id == supplier_id:
                return analysis
        return None


# Recommendation synthesis

@dataclass
class UrgencyFactor(Serializable):
    type: UrgencyFactorType
    description: str
    impact: float
    weight: float


@dataclass
class UrgencyClassification(Serializable):
    level: UrgencyLevel
    score: float
    factors: List[UrgencyFactor]
    time_to_stockout: float
    business_impact: BusinessImpact
    overridden: bool = False


@dataclass
class SupplierAlternative(Serializable):
    quantity: float
    supplier: str
    unit_cost: float
    total_cost: float
    tradeoffs: List[str] = field(default_factory=list)


@dataclass
class CostOptimization(Serializable):
    recommended_quantity: float
    unit_cost: float
    total_cost: float
    alternatives: List[SupplierAlternative] = field(default_factory=list)
    cost_savings_opportunities: List[str] = field(default_factory=list)
    eoq: Optional[int] = None


@dataclass
class SupplierSelection(Serializable):
    supplier_id: str
    reasoning: str


@dataclass
class NarrativeResult(Serializable):
    recommendation: str
    confidence: float
    reasoning: List[str] = field(default_factory=list)
    risk_assessment: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    key_insights: List[str] = field(default_factory=list)
    source: str = 'rules'


@dataclass
class RecommendationRequest(Serializable):
    part_number: str
    current_stock: float
    urgency_override: Optional[UrgencyLevel] = None
    supplier_preference: Optional[str] = None
    max_budget: Optional[float] = None
    required_delivery_date: Optional[date] = None


@dataclass
class ReplenishmentRecommendation(Serializable):
    part_number: str
    recommendation_id: str
    recommended_quantity: float
    suggested_order_date: date
    preferred_supplier: str
    estimated_cost: float
    urgency_level: UrgencyLevel
    reasoning: str
    confidence: float
    status: RecommendationStatus = RecommendationStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class BatchError(Serializable):
    part_number: str
    message: str


@dataclass
class BatchResult(Serializable):
    recommendations: List[ReplenishmentRecommendation] = field(default_factory=list)
    errors: List[BatchError] = field(default_factory=list)  # one entry per failed request
    total_requests: int = 0

    @property
    def succeeded(self) -> int:
        return len(self.recommendations)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def failed_parts(self) -> List[str]:
        return [error.part_number for error in self.errors]

    def summary(self) -> Dict[str, Any]:
        return {
            'total_requests': self.total_requests,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'errors': [error.to_dict() for error in self.errors]
        }
