"""Glance LLM package: providers, failover and prompt rendering."""
