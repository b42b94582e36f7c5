"""
Personal Finance Tracker - Source Package

A single-user finance tracker: income and expense entry, investment
holdings, and derived budget and portfolio views.

DESIGN PRINCIPLES:
1. Every record belongs to exactly one user; every query is scoped to it
2. Derived figures come from pure functions over stored records
3. A missing live price degrades to the purchase price, never to an error
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Tracker Team"
