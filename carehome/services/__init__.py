"""Domain services for the CareHome platform."""
