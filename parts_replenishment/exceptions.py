class ReplenishmentError(Exception):
    """Base exception for the Parts Replenishment engine."""
    
    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.
        
        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Parts Replenishment engine"
        self.code = code
        self.details = details
        super().__init__(self.message)
    
    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message
    
    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }
        
        if self.code:
            error_dict['code'] = self.code
            
        if self.details:
            error_dict['details'] = self.details
            
        return error_dict


class ConfigError(ReplenishmentError):
    """Exception raised for configuration errors."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DataStoreError(ReplenishmentError):
    """Exception raised when the record store cannot be read or written."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Data store error"
        super().__init__(message, code, details)


class ValidationError(ReplenishmentError):
    """Exception raised for data validation errors."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class CalculationError(ReplenishmentError):
    """Exception raised for calculation errors."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)


class DemandAnalysisError(ReplenishmentError):
    """Exception raised for demand pattern analysis errors."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Demand analysis error"
        super().__init__(message, code, details)


class ReorderPointError(ReplenishmentError):
    """Exception raised for reorder point and safety stock calculation errors."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Reorder point calculation error"
        super().__init__(message, code, details)


class RecommendationError(ReplenishmentError):
    """Exception raised when a recommendation cannot be produced."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Recommendation error"
        super().__init__(message, code, details)


class PartNotFoundError(RecommendationError):
    """Exception raised when a spare part does not exist."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Part not found"
        super().__init__(message, code or 'PART_NOT_FOUND', details)


class NoSuppliersError(RecommendationError):
    """Exception raised when no supplier can be selected for a part."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "No suppliers found for part"
        super().__init__(message, code or 'NO_SUPPLIERS', details)


class NarrativeServiceError(ReplenishmentError):
    """Exception raised by the narrative reasoning service."""
    
    def __init__(self, message=None, code=None, details=None):
        message = message or "Narrative service error"
        super().__init__(message, code, details)
