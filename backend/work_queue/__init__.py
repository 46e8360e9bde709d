"""
Durable priority work queue backed by the work_units table.

- priority_queue: WorkQueue facade (enqueue, claim, complete, fail, dead set)
- worker_pool: concurrent consumers sharing one dispatch rate limit
- rate_limiter: async token bucket
"""
