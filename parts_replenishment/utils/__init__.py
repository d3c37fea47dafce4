from .date_utils import month_key, add_months, months_ago, days_between
from .math_utils import mean, std_dev, coefficient_of_variation, linear_regression
from .validation import validate_reorder_point, validate_transaction_record

__all__ = [
    'month_key',
    'add_months',
    'months_ago',
    'days_between',
    'mean',
    'std_dev',
    'coefficient_of_variation',
    'linear_regression',
    'validate_reorder_point',
    'validate_transaction_record'
]
