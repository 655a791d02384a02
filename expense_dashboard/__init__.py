"""
Project Expense Dashboard - Source Package

A single-page dashboard that reads project expenses from a hosted
spreadsheet backend and charts them month by month.

DESIGN PRINCIPLES:
1. The pivot is a pure function of the fetched records
2. Fail visibly, keep the last good chart
3. No silent misattribution: unknown projects follow an explicit policy
4. Every backend action is audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Dashboard Team"
