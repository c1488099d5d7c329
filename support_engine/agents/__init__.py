"""LLM-backed helper agents."""
