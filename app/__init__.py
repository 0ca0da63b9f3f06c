"""Prop Compliance - drawdown rules engine

Drawdown compliance and trade-risk simulation for prop-firm evaluation accounts.
"""

__version__ = "0.1.0"
