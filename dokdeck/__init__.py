"""
DokDeck - client core for a Dokploy companion app

Authenticates with a personal access token, talks to the Dokploy REST API
with normalized error handling, and streams live container logs.
"""

__version__ = "1.0.0"
