"""Preference domain - trip requests and their stored itineraries."""
