"""LLM coding assistant driving an editor through composable actions and tools."""

__version__ = "0.1.0"
