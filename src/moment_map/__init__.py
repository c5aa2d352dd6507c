"""Travel Memories Map.

Fetches a user's collection of geotagged moments from a hosted Supabase
(PostgREST) backend and renders them as pins on an interactive world map,
with a synchronized stats dock and prev/next navigation between moments.
"""

__version__ = "0.1.0"

__author__ = "moment-map contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
