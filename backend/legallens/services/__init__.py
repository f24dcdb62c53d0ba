"""
Services
Business logic and external integrations.
"""

from legallens.services.auth_service import AuthService
from legallens.services.ai_service import AIService
from legallens.services.storage_service import StorageService
from legallens.services.contract_service import ContractService
from legallens.services.upload_service import BatchUpload, UploadRegistry
from legallens.services.comparison_service import ComparisonSession
from legallens.services.session_service import AppSession

__all__ = [
    'AuthService',
    'AIService',
    'StorageService',
    'ContractService',
    'BatchUpload',
    'UploadRegistry',
    'ComparisonSession',
    'AppSession',
]
