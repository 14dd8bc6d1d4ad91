"""Utility helpers for DylibCurator."""
