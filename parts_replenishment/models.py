# parts_replenishment/models.py
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, Text, Enum, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import enum

Base = declarative_base()


class TransactionType(enum.Enum):
    """Kind of a normalized historical transaction.

    Values:
        SALE ('sale'): Demand-side record, counted by demand analysis
        PURCHASE ('purchase'): Supply-side record, counted by supplier evaluation
    """
    SALE = 'sale'
    PURCHASE = 'purchase'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'TransactionType':
        """Create a TransactionType from a string value.

        Accepts the plural forms ('sales', 'purchases') produced by some
        upstream normalizers.

        Raises:
            ValueError if the string value is not valid
        """
        normalized = (value or '').strip().lower().rstrip('s')
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Invalid transaction type: {value}. Valid values are: sale, purchase")


class PartCriticality(enum.Enum):
    CRITICAL = 'critical'
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @classmethod
    def from_category(cls, category: str) -> 'PartCriticality':
        """Map a free-text part category onto a criticality band."""
        category = (category or '').lower()

        if 'critical' in category or 'safety' in category:
            return cls.CRITICAL
        elif 'high' in category or 'important' in category:
            return cls.HIGH
        elif 'medium' in category or 'standard' in category:
            return cls.MEDIUM
        return cls.LOW


class TrendDirection(enum.Enum):
    INCREASING = 'increasing'
    DECREASING = 'decreasing'
    STABLE = 'stable'


class SeasonalPattern(enum.Enum):
    MONTHLY = 'monthly'
    NONE = 'none'


class VariabilityClass(enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class VolatilityPattern(enum.Enum):
    CONSISTENT = 'consistent'
    INCREASING = 'increasing'
    DECREASING = 'decreasing'


class AnomalyType(enum.Enum):
    SPIKE = 'spike'
    DROP = 'drop'


class PatternKind(enum.Enum):
    """Whether a demand pattern was computed from data or is the empty default."""
    POPULATED = 'populated'
    EMPTY = 'empty'


class CalculationMethod(enum.Enum):
    STATISTICAL = 'statistical'
    FIXED = 'fixed'
    DYNAMIC = 'dynamic'


class PerformanceTrend(enum.Enum):
    IMPROVING = 'improving'
    STABLE = 'stable'
    DECLINING = 'declining'


class CostTrend(enum.Enum):
    DECREASING = 'decreasing'
    STABLE = 'stable'
    INCREASING = 'increasing'


class SupplierRecommendation(enum.Enum):
    PREFERRED = 'preferred'
    ACCEPTABLE = 'acceptable'
    MONITOR = 'monitor'
    AVOID = 'avoid'


class RiskType(enum.Enum):
    FINANCIAL = 'financial'
    OPERATIONAL = 'operational'
    STRATEGIC = 'strategic'
    COMPLIANCE = 'compliance'
    GEOGRAPHIC = 'geographic'


class RiskSeverity(enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class CompetitivePosition(enum.Enum):
    STRONG = 'strong'
    MODERATE = 'moderate'
    WEAK = 'weak'


class UrgencyLevel(enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class UrgencyFactorType(enum.Enum):
    STOCK_LEVEL = 'stock_level'
    DEMAND_SPIKE = 'demand_spike'
    LEAD_TIME = 'lead_time'
    SEASONALITY = 'seasonality'
    SUPPLIER_RISK = 'supplier_risk'


class BusinessImpact(enum.Enum):
    MINIMAL = 'minimal'
    MODERATE = 'moderate'
    SIGNIFICANT = 'significant'
    SEVERE = 'severe'


class RecommendationStatus(enum.Enum):
    """Lifecycle of a recommendation.

    The engine only ever writes PENDING; the approval collaborator owns
    every later transition.
    """
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    ORDERED = 'ordered'


class IssueSeverity(enum.Enum):
    ERROR = 'error'
    WARNING = 'warning'
    INFO = 'info'


class SparePart(Base):
    __tablename__ = 'spare_part'

    id = Column(Integer, primary_key=True)
    part_number = Column(String(50), nullable=False, unique=True)
    description = Column(String(255))
    category = Column(String(100), default='')
    unit_of_measure = Column(String(20), default='EA')
    current_stock = Column(Float, default=0.0)
    safety_stock = Column(Float, default=0.0)
    reorder_point = Column(Float, default=0.0)
    lead_time_days = Column(Float, default=14.0)
    unit_cost = Column(Float)
    is_active = Column(Boolean, default=True)
    last_updated = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def criticality(self) -> PartCriticality:
        return PartCriticality.from_category(self.category)

    def __repr__(self):
        return f"<SparePart(part_number='{self.part_number}', category='{self.category}')>"


class TransactionRecord(Base):
    """Normalized historical sales/purchase line, produced upstream."""
    __tablename__ = 'transaction_record'

    id = Column(Integer, primary_key=True)
    part_number = Column(String(50), nullable=False)
    transaction_date = Column(Date, nullable=False)
    transaction_type = Column(Enum(TransactionType), nullable=False)
    invoice_id = Column(String(50))
    quantity = Column(Float, nullable=False, default=0.0)
    unit_price = Column(Float, nullable=False, default=0.0)
    supplier_id = Column(String(50))
    customer_id = Column(String(50))
    quality_score = Column(Float, default=0.0)
    expected_delivery_date = Column(Date)
    delivered_date = Column(Date)

    __table_args__ = (
        Index('idx_transaction_part_date', 'part_number', 'transaction_date'),
        Index('idx_transaction_supplier_date', 'supplier_id', 'transaction_date'),
    )

    def __repr__(self):
        return (f"<TransactionRecord(part_number='{self.part_number}', "
                f"date='{self.transaction_date}', type='{self.transaction_type}')>")


class SupplierProfile(Base):
    """Supplier master data maintained by procurement.

    Relationship and capacity scores are collaborator inputs and are taken as
    given by supplier evaluation.
    """
    __tablename__ = 'supplier_profile'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(String(50), nullable=False, unique=True)
    name = Column(String(255))

    # Supplier metrics
    average_lead_time = Column(Float, default=14.0)
    on_time_delivery_rate = Column(Float, default=0.0)  # percentage
    total_orders = Column(Integer, default=0)

    # Relationship factors (0-100 unless noted)
    communication_score = Column(Float, default=50.0)
    responsiveness_hours = Column(Float, default=24.0)
    flexibility = Column(Float, default=50.0)
    strategic_alignment = Column(Float, default=50.0)
    contract_compliance = Column(Float, default=50.0)
    innovation_support = Column(Float, default=50.0)

    # Capacity assessment
    production_capacity = Column(Float, default=0.0)
    current_utilization = Column(Float, default=0.0)  # percentage
    scalability_score = Column(Float, default=50.0)
    financial_stability = Column(Float, default=50.0)

    payment_terms = Column(String(50), default='Net 30')

    def __repr__(self):
        return f"<SupplierProfile(supplier_id='{self.supplier_id}', name='{self.name}')>"


class ReplenishmentRecommendationRecord(Base):
    __tablename__ = 'replenishment_recommendation'

    id = Column(Integer, primary_key=True)
    recommendation_id = Column(String(50), nullable=False, unique=True)
    part_number = Column(String(50), nullable=False)
    recommended_quantity = Column(Float, nullable=False)
    suggested_order_date = Column(Date, nullable=False)
    preferred_supplier = Column(String(50), nullable=False)
    estimated_cost = Column(Float, nullable=False)
    urgency_level = Column(Enum(UrgencyLevel), nullable=False)
    reasoning = Column(Text)
    confidence = Column(Float, nullable=False)
    status = Column(Enum(RecommendationStatus), default=RecommendationStatus.PENDING, nullable=False)
    created_at = Column(DateTime, nullable=False)
    approved_by = Column(String(100))
    approved_at = Column(DateTime)

    __table_args__ = (
        Index('idx_recommendation_part', 'part_number'),
    )

    def __repr__(self):
        return (f"<ReplenishmentRecommendationRecord(recommendation_id='{self.recommendation_id}', "
                f"part_number='{self.part_number}', status='{self.status}')>")
