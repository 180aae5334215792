"""Material textures: fetching, tiling and caching."""
