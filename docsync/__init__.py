"""DocSync: mirror markdown documentation from GitHub into a content store."""
