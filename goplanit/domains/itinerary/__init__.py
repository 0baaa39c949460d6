"""Itinerary domain - enrichment, generation and the background pipeline."""
