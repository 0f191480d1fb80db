"""
Budget Forecast - Source Package

A personal-finance forecasting tool that projects future account balances
from recurring income and expense rules.

DESIGN PRINCIPLES:
1. The forecast engine is pure: same inputs, same ledger
2. Storage is a collaborator, never a dependency of the engine
3. No silent corrections of user data
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Forecast Team"
