"""
Finance Tracker - Source Package

Client-side synchronized data store for a personal finance tracker:
transactions, recurring bills and savings goals for one user, kept in
step with a remote backend.

DESIGN PRINCIPLES:
1. Local state changes first, remote confirms second
2. A failed remote write never leaves a phantom record behind
3. The store is an explicit object, never a global
4. Every sync step is logged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
