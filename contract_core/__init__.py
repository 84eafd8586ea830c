# =============================================================================
# contract_core/__init__.py
# Data Access Layer for the Contract Management Application
# =============================================================================
"""
contract_core - storage, change notification and spreadsheet import for
licensing contracts, works, partners, channels and users.
"""

__version__ = "0.1.0"
