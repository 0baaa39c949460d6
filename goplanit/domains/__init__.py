"""Domain modules - Business logic organized by bounded context."""
