"""
SpendWise - Source Package

A personal finance tracker: users register, sign in, and manage their
expenses with category tagging, date filtering, pagination and reports.

DESIGN PRINCIPLES:
1. Every expense belongs to exactly one user and is only visible to them
2. Sessions are stateless signed tokens
3. Query and aggregation are deterministic
4. Every significant action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SpendWise Team"
