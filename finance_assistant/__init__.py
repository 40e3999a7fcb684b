"""
Finance Assistant - Source Package

The command interpreter and installment engine behind a personal
finance tracker.

DESIGN PRINCIPLES:
1. Parse → Validate → Execute, never skip a step
2. Rejections are values, not exceptions
3. Money is Decimal and adds up to the cent
4. Every action is auditable
5. Storage and language model are swappable collaborators
"""

__version__ = "1.0.0"
__author__ = "Finance Assistant Team"
