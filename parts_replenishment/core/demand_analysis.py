# parts_replenishment/core/demand_analysis.py
"""Demand pattern analysis for a single spare part.

Sales transactions are bucketed by calendar month; the monthly series is then
analysed for trend, seasonality, variability and anomalies, and summarised in
a forecastability score.
"""
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from parts_replenishment.core.constants import DEMAND_THRESHOLDS, FORECASTABILITY_WEIGHTS
from parts_replenishment.core.types import (
    TrendAnalysis, SeasonalityAnalysis, VariabilityAnalysis, AnomalyDetection,
    ForecastabilityScore, DemandPattern, DemandForecast
)
from parts_replenishment.config import config
from parts_replenishment.exceptions import DataStoreError, DemandAnalysisError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.models import (
    TransactionType, TrendDirection, SeasonalPattern, VariabilityClass,
    VolatilityPattern, AnomalyType, PatternKind
)
from parts_replenishment.utils.date_utils import (
    month_key, month_key_to_date, calendar_month, add_months
)
from parts_replenishment.utils.math_utils import (
    mean, std_dev, coefficient_of_variation, linear_regression, split_halves, clip
)

logger = get_logger(__name__)

NO_HISTORY_CHALLENGE = 'No historical data available'


def _transaction_type(record) -> TransactionType:
    value = record.transaction_type
    if isinstance(value, TransactionType):
        return value
    return TransactionType.from_string(value)


def aggregate_monthly_demand(records: Sequence) -> Dict[str, float]:
    """Aggregate sale quantities into monthly buckets.

    Args:
        records: Transaction records with transaction_type, transaction_date
                 and quantity attributes

    Returns:
        Dictionary of 'YYYY-MM' -> total quantity, ordered by month
    """
    monthly = {}

    for record in records:
        if _transaction_type(record) != TransactionType.SALE:
            continue
        key = month_key(record.transaction_date)
        monthly[key] = monthly.get(key, 0.0) + float(record.quantity or 0.0)

    return {key: monthly[key] for key in sorted(monthly)}


def detect_change_points(
    values: Sequence[float],
    period_keys: Sequence[str],
    thresholds: Dict = DEMAND_THRESHOLDS
) -> List[date]:
    """Find periods where the moving-window mean shifts sharply.

    Args:
        values: Monthly demand values
        period_keys: Matching 'YYYY-MM' keys
        thresholds: Demand analysis thresholds

    Returns:
        First-of-month dates of the detected change points
    """
    change_points = []
    n = len(values)

    if n < thresholds['min_change_point_periods']:
        return change_points

    window = min(thresholds['change_point_window'], n // 3)
    overall_std = std_dev(values)

    for i in range(window, n - window):
        before = mean(values[i - window:i])
        after = mean(values[i:i + window])

        if abs(after - before) > thresholds['change_point_sigma'] * overall_std:
            change_points.append(month_key_to_date(period_keys[i]))

    return change_points


def analyze_trend(
    values: Sequence[float],
    period_keys: Sequence[str],
    thresholds: Dict = DEMAND_THRESHOLDS
) -> TrendAnalysis:
    """Fit a linear trend to the monthly series.

    Args:
        values: Monthly demand values
        period_keys: Matching 'YYYY-MM' keys
        thresholds: Demand analysis thresholds

    Returns:
        TrendAnalysis; stable with zero strength for short or all-zero series
    """
    if len(values) < thresholds['min_trend_periods']:
        return TrendAnalysis()

    avg = mean(values)
    if avg == 0:
        return TrendAnalysis()

    slope, _, r2 = linear_regression(list(range(len(values))), values)

    if abs(slope) < avg * thresholds['trend_slope_ratio']:
        direction = TrendDirection.STABLE
    elif slope > 0:
        direction = TrendDirection.INCREASING
    else:
        direction = TrendDirection.DECREASING

    return TrendAnalysis(
        direction=direction,
        strength=min(abs(slope) / avg, 1.0),
        change_points=detect_change_points(values, period_keys, thresholds),
        confidence=r2,
        monthly_growth_rate=slope / avg * 100.0
    )


def analyze_seasonality(
    monthly_demand: Dict[str, float],
    thresholds: Dict = DEMAND_THRESHOLDS
) -> SeasonalityAnalysis:
    """Derive per-calendar-month seasonal indices.

    Args:
        monthly_demand: Dictionary of 'YYYY-MM' -> quantity
        thresholds: Demand analysis thresholds

    Returns:
        SeasonalityAnalysis keyed by two-digit calendar month
    """
    months = sorted(monthly_demand)

    if len(months) < thresholds['min_seasonal_periods']:
        return SeasonalityAnalysis()

    overall_mean = mean([monthly_demand[m] for m in months])
    if overall_mean == 0:
        return SeasonalityAnalysis()

    ratios = {}
    for key in months:
        ratios.setdefault(calendar_month(key), []).append(monthly_demand[key] / overall_mean)

    indices = {month: mean(values) for month, values in ratios.items()}

    strength = clip(std_dev(list(indices.values())), 0.0, 1.0)
    detected = strength > thresholds['seasonality_strength']

    ranked = sorted(indices.items(), key=lambda item: item[1], reverse=True)
    extremes = thresholds['seasonal_extremes']

    return SeasonalityAnalysis(
        detected=detected,
        pattern=SeasonalPattern.MONTHLY if detected else SeasonalPattern.NONE,
        indices=indices,
        strength=strength,
        confidence=(thresholds['seasonal_confidence_detected'] if detected
                    else thresholds['seasonal_confidence_absent']),
        peak_periods=[month for month, _ in ranked[:extremes]],
        low_periods=[month for month, _ in ranked[-extremes:]]
    )


def analyze_variability(
    values: Sequence[float],
    thresholds: Dict = DEMAND_THRESHOLDS
) -> VariabilityAnalysis:
    """Classify the spread of the monthly series.

    Args:
        values: Monthly demand values
        thresholds: Demand analysis thresholds

    Returns:
        VariabilityAnalysis
    """
    if not values:
        return VariabilityAnalysis()

    cv = coefficient_of_variation(values)

    if cv < thresholds['cv_low']:
        classification = VariabilityClass.LOW
    elif cv < thresholds['cv_medium']:
        classification = VariabilityClass.MEDIUM
    else:
        classification = VariabilityClass.HIGH

    first_half, second_half = split_halves(values)
    cv_difference = coefficient_of_variation(second_half) - coefficient_of_variation(first_half)

    if abs(cv_difference) < thresholds['volatility_tolerance']:
        volatility = VolatilityPattern.CONSISTENT
    elif cv_difference > 0:
        volatility = VolatilityPattern.INCREASING
    else:
        volatility = VolatilityPattern.DECREASING

    return VariabilityAnalysis(
        coefficient=cv,
        classification=classification,
        volatility_pattern=volatility,
        standard_deviation=std_dev(values),
        mean_demand=mean(values)
    )


def detect_anomalies(
    monthly_demand: Dict[str, float],
    thresholds: Dict = DEMAND_THRESHOLDS
) -> List[AnomalyDetection]:
    """Flag months whose demand lies more than N standard deviations from the mean."""
    values = list(monthly_demand.values())
    avg = mean(values)
    sigma = std_dev(values)

    if sigma == 0:
        return []

    anomalies = []
    for key, value in monthly_demand.items():
        z_score = abs((value - avg) / sigma)
        if z_score > thresholds['anomaly_z_score']:
            kind = AnomalyType.SPIKE if value > avg else AnomalyType.DROP
            anomalies.append(AnomalyDetection(
                date=month_key_to_date(key),
                type=kind,
                magnitude=z_score,
                actual_value=value,
                expected_value=avg,
                explanation=f"Demand {kind.value} of {z_score:.1f} standard deviations"
            ))

    return anomalies


def calculate_forecastability(
    trend: TrendAnalysis,
    seasonality: SeasonalityAnalysis,
    variability: VariabilityAnalysis,
    anomalies: List[AnomalyDetection],
    weights: Dict = FORECASTABILITY_WEIGHTS
) -> ForecastabilityScore:
    """Combine the individual analyses into a 0-1 forecastability score.

    Args:
        trend: Trend analysis
        seasonality: Seasonality analysis
        variability: Variability analysis
        anomalies: Detected anomalies
        weights: Forecastability weights

    Returns:
        ForecastabilityScore with challenges and recommendations
    """
    score = weights['base']
    challenges = []
    recommendations = []

    if trend.confidence > weights['trend_confidence']:
        score += weights['trend_bonus']
        recommendations.append('Strong trend detected - use trend-based forecasting')
    else:
        challenges.append('Weak or inconsistent trend')

    if seasonality.detected and seasonality.confidence > weights['seasonality_confidence']:
        score += weights['seasonality_bonus']
        recommendations.append('Seasonal patterns detected - incorporate seasonality in forecasts')
    else:
        challenges.append('No clear seasonal patterns')

    if variability.classification == VariabilityClass.LOW:
        score += weights['low_variability_bonus']
    elif variability.classification == VariabilityClass.HIGH:
        score -= weights['high_variability_penalty']
        challenges.append('High demand variability')
        recommendations.append('Consider safety stock adjustments for high variability')

    if anomalies:
        score -= min(len(anomalies) * weights['anomaly_penalty'], weights['max_anomaly_penalty'])
        challenges.append(f"{len(anomalies)} demand anomalies detected")
        recommendations.append('Investigate causes of demand anomalies')

    score = clip(score, 0.0, 1.0)

    if score > 0.7:
        confidence = 0.9
    elif score > 0.4:
        confidence = 0.7
    else:
        confidence = 0.4

    return ForecastabilityScore(
        score=score,
        challenges=challenges,
        recommendations=recommendations,
        confidence=confidence
    )


def create_empty_pattern(part_number: str, analysis_date: Optional[datetime] = None) -> DemandPattern:
    """Create the explicit empty pattern used when a part has no sale history."""
    return DemandPattern(
        part_number=part_number,
        analysis_date=analysis_date or datetime.now(),
        kind=PatternKind.EMPTY,
        trend=TrendAnalysis(),
        seasonality=SeasonalityAnalysis(),
        variability=VariabilityAnalysis(),
        anomalies=[],
        forecastability=ForecastabilityScore(
            score=0.0,
            challenges=[NO_HISTORY_CHALLENGE],
            recommendations=['Collect more demand data before forecasting'],
            confidence=0.0
        ),
        monthly_demand={}
    )


def analyze_demand_pattern(
    part_number: str,
    records: Sequence,
    thresholds: Dict = DEMAND_THRESHOLDS,
    weights: Dict = FORECASTABILITY_WEIGHTS,
    analysis_date: Optional[datetime] = None
) -> DemandPattern:
    """Analyze the demand pattern of a part from its transaction history.

    Args:
        part_number: Part number
        records: Transaction records (only sales count as demand)
        thresholds: Demand analysis thresholds
        weights: Forecastability weights
        analysis_date: Timestamp stamped on the result (default now)

    Returns:
        DemandPattern; kind EMPTY when there is no positive sale demand
    """
    monthly = aggregate_monthly_demand(records)
    values = list(monthly.values())

    if not values or mean(values) == 0:
        return create_empty_pattern(part_number, analysis_date)

    try:
        trend = analyze_trend(values, list(monthly.keys()), thresholds)
        seasonality = analyze_seasonality(monthly, thresholds)
        variability = analyze_variability(values, thresholds)
        anomalies = detect_anomalies(monthly, thresholds)
        forecastability = calculate_forecastability(
            trend, seasonality, variability, anomalies, weights
        )
    except (KeyError, ValueError, ZeroDivisionError) as e:
        raise DemandAnalysisError(
            f"Error analyzing demand for part {part_number}: {str(e)}",
            details={'part_number': part_number}
        )

    return DemandPattern(
        part_number=part_number,
        analysis_date=analysis_date or datetime.now(),
        kind=PatternKind.POPULATED,
        trend=trend,
        seasonality=seasonality,
        variability=variability,
        anomalies=anomalies,
        forecastability=forecastability,
        monthly_demand=monthly
    )


def generate_demand_forecast(
    pattern: DemandPattern,
    months: int = 12,
    start: Optional[date] = None,
    thresholds: Dict = DEMAND_THRESHOLDS
) -> List[DemandForecast]:
    """Project monthly demand forward from an analysed pattern.

    Args:
        pattern: Demand pattern to project
        months: Number of months to forecast
        start: Reference date; forecast i is dated start + i months
        thresholds: Demand analysis thresholds

    Returns:
        List of DemandForecast, one per month
    """
    if start is None:
        start = date.today()

    interval = thresholds['forecast_interval_z'] * pattern.variability.standard_deviation
    forecasts = []

    for i in range(1, months + 1):
        forecast_date = add_months(start, i)
        base = pattern.variability.mean_demand

        if pattern.trend.direction != TrendDirection.STABLE:
            base *= 1 + pattern.trend.monthly_growth_rate / 100.0 * i

        seasonal_factor = 1.0
        if pattern.seasonality.detected:
            seasonal_factor = pattern.seasonality.indices.get(f"{forecast_date.month:02d}", 1.0)
            base *= seasonal_factor

        forecasts.append(DemandForecast(
            part_number=pattern.part_number,
            forecast_date=forecast_date,
            predicted_demand=max(0, int(round(base))),
            lower_bound=max(0, int(round(base - interval))),
            upper_bound=max(0, int(round(base + interval))),
            seasonality_factor=seasonal_factor
        ))

    return forecasts


class DemandAnalyzer:
    """Analyze demand patterns for parts using a historical data source.

    The data source must provide ``get_historical_demand(part_number, months)``
    returning transaction records ordered by date.
    """

    def __init__(
        self,
        data_source=None,
        thresholds: Dict = None,
        weights: Dict = None,
        lookback_months: Optional[int] = None
    ):
        self.data_source = data_source
        self.thresholds = thresholds or DEMAND_THRESHOLDS
        self.weights = weights or FORECASTABILITY_WEIGHTS
        self.lookback_months = lookback_months or config.demand_config['lookback_months']

    def get_history(self, part_number: str, months: Optional[int] = None) -> List:
        """Fetch the part's history; data store failures degrade to no history."""
        if self.data_source is None:
            return []

        try:
            return list(self.data_source.get_historical_demand(
                part_number, months or self.lookback_months
            ))
        except DataStoreError as e:
            logger.warning(f"Could not fetch demand history for {part_number}: {str(e)}")
            return []

    def analyze(self, part_number: str, months: Optional[int] = None, records: Optional[Sequence] = None) -> DemandPattern:
        """Analyze the demand pattern of a part.

        Args:
            part_number: Part number
            months: Lookback window in months (default configured lookback)
            records: Pre-fetched records; the data source is skipped when given

        Returns:
            DemandPattern
        """
        if records is None:
            records = self.get_history(part_number, months)

        pattern = analyze_demand_pattern(part_number, records, self.thresholds, self.weights)

        logger.debug(
            f"Demand pattern for {part_number}: kind={pattern.kind.value}, "
            f"mean={pattern.mean_demand:.2f}, forecastability={pattern.forecastability.score:.2f}"
        )
        return pattern

    def forecast(self, part_number: str, months: Optional[int] = None, start: Optional[date] = None) -> List[DemandForecast]:
        """Analyze a part and project its demand forward."""
        horizon = months or config.demand_config['forecast_months']
        pattern = self.analyze(part_number)
        return generate_demand_forecast(pattern, horizon, start, self.thresholds)
