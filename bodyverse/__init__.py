"""
BodyVerse pricing service.

Localized subscription pricing, currency conversion and display formatting
for the BodyVerse paywall.
"""

__version__ = "1.0.0"
