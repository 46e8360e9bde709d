"""
Worker Lambda handlers and the typed structures passed between pipeline stages.

Workers:
- scrape_worker: Scheduled scrape run (EventBridge cron → ScrapeScheduler.run_scheduled)
- types: Dataclasses flowing catalog → queue → strategy → extraction → ingestion
"""
