"""Core — models, engine, recipes, and use cases."""
