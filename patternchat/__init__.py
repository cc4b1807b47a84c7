"""
PatternChat

Routes conversational requests through pattern/context/strategy prompt
assembly and dispatches them to interchangeable language-model providers.
"""

__version__ = "0.3.0"
