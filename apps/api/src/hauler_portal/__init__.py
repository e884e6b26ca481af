"""Hauler onboarding portal: onboarding wizard engine and intake API."""

__version__ = "0.1.0"
