"""Network adapters — downloads and release lookups."""
