"""Live sync collector service."""
