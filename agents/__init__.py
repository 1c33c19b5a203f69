"""Desk participants: roster, capability tools, scripted and LLM-backed members."""
