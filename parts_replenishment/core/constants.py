# parts_replenishment/core/constants.py
"""Tunable heuristics for the decision engine.

Every component receives these tables through its constructor so that
alternates can be injected in tests or tuned per deployment without touching
the algorithms.
"""

# Demand pattern analysis
DEMAND_THRESHOLDS = {
    'min_trend_periods': 3,
    'trend_slope_ratio': 0.05,          # |slope| below this share of mean => stable
    'min_change_point_periods': 6,
    'change_point_window': 3,
    'change_point_sigma': 1.5,
    'min_seasonal_periods': 12,
    'seasonality_strength': 0.1,
    'seasonal_confidence_detected': 0.8,
    'seasonal_confidence_absent': 0.2,
    'seasonal_extremes': 3,             # number of peak/low periods reported
    'cv_low': 0.3,
    'cv_medium': 0.7,
    'volatility_tolerance': 0.1,
    'anomaly_z_score': 2.0,
    'forecast_interval_z': 1.96
}

FORECASTABILITY_WEIGHTS = {
    'base': 0.5,
    'trend_confidence': 0.7,
    'trend_bonus': 0.2,
    'seasonality_confidence': 0.6,
    'seasonality_bonus': 0.2,
    'low_variability_bonus': 0.2,
    'high_variability_penalty': 0.2,
    'anomaly_penalty': 0.05,
    'max_anomaly_penalty': 0.2
}

# Reorder point and safety stock
SERVICE_LEVEL_TARGETS = {
    'critical': {
        'level': 0.99,
        'description': 'Critical parts - 99% service level',
        'stockout_risk': 1,
        'carrying_cost_impact': 1.5
    },
    'high': {
        'level': 0.95,
        'description': 'High importance - 95% service level',
        'stockout_risk': 5,
        'carrying_cost_impact': 1.2
    },
    'medium': {
        'level': 0.90,
        'description': 'Medium importance - 90% service level',
        'stockout_risk': 10,
        'carrying_cost_impact': 1.0
    },
    'low': {
        'level': 0.85,
        'description': 'Low importance - 85% service level',
        'stockout_risk': 15,
        'carrying_cost_impact': 0.8
    }
}

# Standard normal quantiles; lookups round up to the next tabulated level
Z_SCORES = {
    0.50: 0.00,
    0.60: 0.25,
    0.70: 0.52,
    0.75: 0.67,
    0.80: 0.84,
    0.85: 1.04,
    0.90: 1.28,
    0.95: 1.65,
    0.99: 2.33,
    0.995: 2.58,
    0.999: 3.09
}

MIN_SERVICE_LEVEL = 0.5
MAX_SERVICE_LEVEL = 0.999

CANDIDATE_SERVICE_LEVELS = (0.85, 0.90, 0.95, 0.99)

REORDER_POINT_THRESHOLDS = {
    'days_per_month': 30,
    'lead_time_cv_base': 0.5,
    'lead_time_cv_on_time_factor': 0.4,
    'base_confidence': 0.5,
    'forecastability_weight': 0.3,
    'on_time_rate_threshold': 80,
    'on_time_bonus': 0.2,
    'order_history_threshold': 10,
    'order_history_bonus': 0.1,
    'statistical_confidence': 0.7,
    'fixed_confidence_cap': 0.6,
    'max_confidence': 0.95,
    'minimal_confidence': 0.3,
    'minimal_service_level': 0.85,
    'excessive_months_of_demand': 6,
    'low_confidence': 0.5,
    'max_service_level_low_criticality': 0.99
}

# Supplier evaluation
SUPPLIER_SCORE_WEIGHTS = {
    'delivery': 0.25,
    'cost': 0.20,
    'quality': 0.25,
    'relationship': 0.15,
    'capacity': 0.15
}

SUPPLIER_THRESHOLDS = {
    'on_time_weight': 0.7,
    'consistency_weight': 0.3,
    'trend_window': 6,
    'trend_change_pct': 5.0,
    'tco_multiplier': 1.15,
    'max_defect_rate': 5.0,
    'quality_to_defect_divisor': 20.0,
    'return_to_defect_ratio': 0.3,
    'on_time_medium_risk': 80,
    'on_time_high_risk': 60,
    'defect_medium_risk': 3,
    'defect_high_risk': 5,
    'financial_stability_risk': 70,
    'utilization_risk': 90,
    'monitor_score_with_high_risk': 70,
    'preferred_score': 80,
    'acceptable_score': 60,
    'strong_market_score': 75,
    'moderate_market_score': 60,
    'market_trend_share': 0.6,
    'neutral_profile_score': 50.0
}

RECOMMENDED_SUPPLIER_CONFIDENCE = {
    'preferred': 0.9,
    'acceptable': 0.7,
    'fallback': 0.4
}

# Recommendation synthesis
URGENCY_WEIGHTS = {
    'stock_level': 0.4,
    'demand_spike': 0.25,
    'lead_time': 0.2,
    'seasonality': 0.1,
    'supplier_risk': 0.05
}

URGENCY_THRESHOLDS = {
    'critical': 80,
    'high': 60,
    'medium': 40,
    # stock ratio bands -> impact
    'stock_bands': ((0.5, 100), (0.8, 75), (1.0, 50)),
    'stock_above_reorder_impact': 25,
    'demand_base_impact': 25,
    'demand_increasing_impact': 60,
    'demand_anomaly_impact': 75,
    'anomaly_recency_days': 90,
    'lead_time_reference_days': 30,
    'lead_time_reference_impact': 50,
    'seasonal_base_impact': 25,
    'seasonal_peak_impact': 70,
    'seasonal_low_impact': 10,
    'seasonal_peak_index': 1.2,
    'seasonal_low_index': 0.8,
    'risk_factor_impact': 25,
    'no_demand_stockout_days': 999,
    # stock ratio at or below this keeps the level at high or above
    'escalation_stock_ratio': 0.5
}

ORDER_DATE_BUFFER_DAYS = {
    'critical': 0,
    'high': 5,
    'medium': 10,
    'low': 15
}

COST_OPTIMIZATION_THRESHOLDS = {
    'eoq_trigger_ratio': 1.5,
    'max_base_multiple': 2,
    'alternatives': 3,
    'volume_discount_share': 0.25
}

CONFIDENCE_WEIGHTS = {
    'base': 0.5,
    'reorder_point': 0.3,
    'forecastability': 0.2,
    'supplier': 0.2,
    'reasoning': 0.3,
    'cap': 0.95
}

NARRATIVE_DEFAULT_CONFIDENCE = 0.7
