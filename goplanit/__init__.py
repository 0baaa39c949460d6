"""GoPlanIt backend - travel preferences and AI-generated itineraries."""

__version__ = "0.1.0"
