"""Content store interface and its SQLAlchemy implementation."""
