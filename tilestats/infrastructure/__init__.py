"""Infrastructure adapters: data store, tile config loaders, cache, security."""
