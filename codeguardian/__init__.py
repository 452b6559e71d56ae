"""
codeguardian — model-backed code suggestions and inline explanations.
"""

__version__ = "0.3.0"
