"""Transformation of raw documentation files into storable content."""
