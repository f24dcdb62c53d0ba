"""
API Routers
All FastAPI routers for the application.
"""

from legallens.routers import auth, contracts, uploads, chat, compare, recent

__all__ = ['auth', 'contracts', 'uploads', 'chat', 'compare', 'recent']
