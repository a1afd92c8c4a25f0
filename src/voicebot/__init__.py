"""Voice-activated chatbot client."""

__version__ = "0.1.0"
