"""Civic initiative engine: vote resolution, demographics and lifecycle."""
