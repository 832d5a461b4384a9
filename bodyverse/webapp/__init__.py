"""
Web application for the BodyVerse pricing API.
"""
