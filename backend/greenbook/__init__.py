"""Greenbook identity service: profiles and globally unique usernames."""
