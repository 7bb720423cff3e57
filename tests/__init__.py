"""Unit and property-based tests for the shadow/highlight package."""
