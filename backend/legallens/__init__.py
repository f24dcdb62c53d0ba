"""
LegalLens Backend
Contract upload, AI risk analysis, comparison and chat.
"""
