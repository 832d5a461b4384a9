"""
Services layer for BodyVerse pricing.

Composes geolocation, exchange rates and regional pricing for the web and CLI.
"""

from bodyverse.services.pricing_resolver import PricingResolver

__all__ = ["PricingResolver"]
