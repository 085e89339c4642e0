"""Client-side data access: tiered cache and cache-first loader."""
