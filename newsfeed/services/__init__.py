"""
Services layer - the aggregation and resilience pipeline.

1. Aggregator (aggregator.py):
   - Invokes a section's provider adapters in declared order
   - Appends capped RSS feeds as supplementary content

2. Ranking (ranking.py):
   - Title-prefix deduplication (first seen wins)
   - Recency sort, quality score, tags, relative age

3. Cache (cache.py):
   - Best-effort read-through/write-through cache per section

4. Feed (feed.py):
   - Request path with cache, stale-cache and mock fallbacks

5. Scheduler (scheduler.py):
   - Periodic, reentrancy-guarded refresh of every section

6. Rate limiting (rate_limiter.py):
   - Per-provider request spacing
"""
