"""Core domain package for notishield.

Core contains pattern matching, tag rules, the decision cache and the shield
state machine without any storage, HTTP or Telegram-specific code, keeping the
filtering logic portable.
"""
