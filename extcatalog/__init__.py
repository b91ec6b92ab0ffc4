"""
extcatalog: browse, search and inspect a catalog of browser extensions.

The package is split into a catalog layer (records, storage port, service),
a manifest layer (schema validation and security summaries) and a FastAPI
server that exposes both over HTTP.
"""

__version__ = "0.3.0"
