"""NLP utilities for routing.

Module scope:
- LLM-driven intent classification and dispatch (`intent_router`).
"""
