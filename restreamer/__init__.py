"""Restream provisioning for Facebook Live and api.video."""
