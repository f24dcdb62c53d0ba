"""
Core
Error taxonomy, risk table, key-value store and view state.
"""

from legallens.core.errors import (
    ErrorKind,
    LegalLensError,
    AnalysisError,
    StorageError,
    InputValidationError,
    UploadStateError,
    classify_error,
)
from legallens.core.risk import RISK_TABLE, risk_level_for_score
from legallens.core.storage import KeyValueStore
from legallens.core.view_state import Screen, ViewState, ViewStateMachine

__all__ = [
    'ErrorKind',
    'LegalLensError',
    'AnalysisError',
    'StorageError',
    'InputValidationError',
    'UploadStateError',
    'classify_error',
    'RISK_TABLE',
    'risk_level_for_score',
    'KeyValueStore',
    'Screen',
    'ViewState',
    'ViewStateMachine',
]
