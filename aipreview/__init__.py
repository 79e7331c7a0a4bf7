"""Generation and recovery pipeline for LLM-built project analyses and React previews."""
