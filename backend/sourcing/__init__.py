"""
Job Sourcing Module

Catalog of employers, the orchestrated scrape run over it, and the
scheduling/trigger surface.

- catalog: CompanyCatalog (seed, discover, add, retag)
- orchestrator: ScrapeOrchestrator (run, process_unit)
- scheduler: ScrapeScheduler (trigger with cooldown, scheduled and periodic runs)
- context: ScraperContext wiring everything from Settings
"""
