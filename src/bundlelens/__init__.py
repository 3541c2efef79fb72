"""bundlelens — unused-code and bundle-chain analysis for web pages."""

__version__ = "0.1.0"
