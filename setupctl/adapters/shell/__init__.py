"""Shell adapters — commands and filesystem."""
