"""Core constants: cache key prefixes, placeholder tokens, and shared literals."""

# Cache key prefixes
CACHE_PREFIX_TILE_STATS = "tile_stats"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Placeholder tokens in query specifications start with this marker
PLACEHOLDER_PREFIX = "$"

# Rendered in place of a value when its stat query failed
ERROR_FORMATTED_VALUE = "Error"

# Rendered when a stat produced no value (e.g. SUM over zero rows)
MISSING_FORMATTED_VALUE = "N/A"

# Permission a viewer needs to see stats declared private
PRIVATE_STATS_PERMISSION = "stats.read"

# Organization ids: UUID/CUID-style; never interpolated into queries
ORGANIZATION_ID_MAX_LENGTH = 64
