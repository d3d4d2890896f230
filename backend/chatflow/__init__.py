"""
ChatFlow - Conversational flow execution engine for multi-tenant WhatsApp
"""

__version__ = "1.0.0"
