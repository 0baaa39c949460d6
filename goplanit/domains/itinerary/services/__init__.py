"""Itinerary services - enrichment, generation, notification and the pipeline."""

from goplanit.domains.itinerary.services.generator import ItineraryGenerator
from goplanit.domains.itinerary.services.notifier import EmailNotifier
from goplanit.domains.itinerary.services.pipeline import ItineraryPipeline
from goplanit.domains.itinerary.services.travel_data import (
    EnrichmentData,
    TravelDataGateway,
)

__all__ = [
    "EmailNotifier",
    "EnrichmentData",
    "ItineraryGenerator",
    "ItineraryPipeline",
    "TravelDataGateway",
]
