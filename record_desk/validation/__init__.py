from .errors import ImportFormatError, ValidationError, ValidationIssue
from .form_validation import validate_form

__all__ = ["ImportFormatError", "ValidationError", "ValidationIssue", "validate_form"]
