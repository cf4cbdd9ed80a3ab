"""
ContextGate: durable user context (decisions, goals, preferences, known
issues and contextual todos) for an assistant.
"""

__version__ = "0.1.0"
