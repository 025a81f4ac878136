"""
Finance Tracker - Source Package

Core library of a personal finance tracker: AI-assisted category
suggestions for transactions and budget threshold alerting.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → History learns
2. Alerts fire at most once per budget threshold per session
3. Storage failures are logged, never raised to the caller
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
