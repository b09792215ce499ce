"""Core configuration and ontology types."""
