"""Self-hosted mail relay: SMTP ingestion, durable storage and retrieval API."""

__version__ = "0.1.0"
