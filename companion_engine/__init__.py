"""
Companion Engine - AI Companion Response Orchestration

A FastAPI-based service for chatting with customizable AI companion
characters, with personality-aware prompting, multi-provider fallback
for text and portraits, and voice synthesis.
"""

__version__ = "0.1.0"
