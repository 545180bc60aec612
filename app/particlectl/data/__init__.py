"""Bundled data files for particlectl."""
