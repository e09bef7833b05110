"""
gamecatalog package.

Layered like this:

  gamecatalog/repositories/  : pure I/O, one directory per entity under
                               ``<metadata>/content/<type>/<id>/`` holding a
                               ``metadata.json`` descriptor.
  gamecatalog/services/      : business logic for the tag taxonomy, collection
                               membership, media assets, cascading deletes.
  gamecatalog/cache.py       : in-process read cache kept in step with writes
                               through ``update_cache`` callbacks.

``Catalog`` (in ``catalog.py``) is the integration point: it creates the
repository and service instances and exposes them as public attributes
(e.g. ``catalog.collection_service``).  The Flask app in ``catalog_api.py``
and the maintenance CLI both go through those services.
"""
