"""Adapters connecting the notishield core to sqlite, HTTP and Telegram."""
