"""
AI extraction: raw postings → normalized ExtractedJobData.

- model_client: ModelClient protocol + OpenAI implementation
- normalize: deterministic rules applied after the model call
- pipeline: batching, prompt building, error isolation, extract_skills()
"""
