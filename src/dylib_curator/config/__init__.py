"""Configuration for DylibCurator."""
