"""
DylibCurator - extract, curate and reconcile dynamic libraries from app bundles.

© 2026 MBP LLC. All rights reserved.
"""

__version__ = "1.0.0"
