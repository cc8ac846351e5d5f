from rest_framework import status
from rest_framework.exceptions import APIException


class WorkflowError(APIException):
    """Raised when a document action is not allowed in its current state"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Action not allowed in the current status.'
    default_code = 'workflow_error'


class InsufficientStockError(WorkflowError):
    default_detail = 'Insufficient stock available.'
    default_code = 'insufficient_stock'
