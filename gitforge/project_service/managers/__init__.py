"""Data access managers for the project service.

Each module provides async functions that encapsulate store operations.
Managers accept ``AsyncSession`` as a parameter and raise domain exceptions
(``LookupError``, ``ValueError``), never HTTP exceptions -- that translation
is the router's responsibility.
"""
