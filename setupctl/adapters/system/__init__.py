"""System adapters — apt, systemd, ufw, users."""
