"""
Diary Analyzer: journal analysis proxy for the Gemini API
"""
__version__ = "0.3.0"
