"""
Chat Deleter - resumable, rate-limit aware bulk deletion of exported chat messages
"""

__version__ = "0.1.0"
